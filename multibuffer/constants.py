# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

# Virtual documents are named <scheme><handle>
VIRTUAL_DOCUMENT_SCHEME = "multibuffer://"

# Each virtual document owns the namespace <prefix><handle>
NAMESPACE_PREFIX = "multibuffer_"

# Loro text container holding a document's lines
CONTENT_CONTAINER = "content"

# Decoration priorities
REGION_PRIORITY = 20000
HEADER_PRIORITY = 20001
LINE_NUMBER_PRIORITY = 100

# Margin line numbers wrap at this period to keep the column narrow
LINE_NUMBER_PERIOD = 1000

TITLE_FORMAT = " ─────── Source: {name} ─────── "
UNKNOWN_DOCUMENT_NAME = "Unknown"

RIPGREP_BINARY = "rg"
RIPGREP_ARGS = ["--vimgrep", "--smart-case", "--sort", "path"]
