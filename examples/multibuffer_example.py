#!/usr/bin/env python3
"""
Simple MultibufferEngine Example: Memory-only Usage

This example builds a virtual document out of two in-memory sources, edits it,
and writes the edits back without touching any file.
"""

from multibuffer import LoroHost, MultibufferEngine

def main():
    print("🚀 MultibufferEngine Memory-only Example")
    print("=" * 50)

    # Create the host and two source documents
    print("1. Creating source documents...")
    host = LoroHost()
    engine = MultibufferEngine(host, event_callback=on_event)
    app = host.create_document("app.py", lines=[
        "import sys",
        "",
        "def main():",
        "    print('hello')",
        "    return 0",
    ])
    util = host.create_document("util.py", lines=[
        "def helper(value):",
        "    return value * 2",
    ])
    print(f"   ✅ Created documents {app} and {util}")

    # Show two functions side by side
    print("\n2. Building the virtual document...")
    virtual_doc = engine.create()
    engine.add_regions(virtual_doc, app, [{"start_row": 2, "end_row": 4}])
    engine.add_regions(virtual_doc, util, [(0, 1)])
    print_document(host, virtual_doc)

    # Edit through the virtual document
    print("\n3. Editing and saving the virtual document...")
    host.set_lines(virtual_doc, 1, 2, ["    print('hello, world')"])
    host.write(virtual_doc)
    print(f"   📄 app.py now reads: {host.get_lines(app, 3, 4)[0].strip()}")

    # Map a virtual line back to its source
    print("\n4. Resolving context:")
    for line in range(host.line_count(virtual_doc)):
        context = engine.get_context(virtual_doc, line)
        if context:
            print(f"   line {line} -> {host.get_name(context.source_document)}:{context.source_line + 1}")

    print(f"\n✅ Memory-only example completed successfully!")
    print(f"   {engine}")

def on_event(event_type, data):
    """Print engine events as they happen"""
    print(f"   📡 {event_type}: {data}")

def print_document(host, doc):
    """Helper function to print a document with its headers and line numbers"""
    for line in host.render(doc):
        print(f"   {line}")

if __name__ == "__main__":
    main()
