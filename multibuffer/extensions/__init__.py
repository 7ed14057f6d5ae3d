# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Ways of filling virtual documents from external tools.
"""

from .ripgrep import SearchResult, add_search_results, expand_regions, parse_vimgrep, run_ripgrep

__all__ = ["SearchResult", "add_search_results", "expand_regions", "parse_vimgrep", "run_ripgrep"]
