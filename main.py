"""
main.py

PipeSync - headless entry point.

Loads an adapter configuration, runs one text -> diagram synchronization
pass and prints the render payload (nodes, edges, canvas extent) as JSON.
Stages and exits without coordinates receive fallback positions; with
``--write`` those positions are stored back into the file.

Usage:
    python main.py FILE [--adapter NAME] [--horizontal] [--write] [--trace CATEGORIES]

Environment:
    PIPESYNC_TRACE=1 or PIPESYNC_TRACE=SYNC,SURGERY (trace the sync loop on stderr)
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import QCoreApplication

from debug_trace import close_log, configure, trace, trace_exception
from editor import FlowSynchronizer
from markup.legacy import to_current_syntax
from models import LayoutMode
from settings import get_settings


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: List of arguments to parse. If None, uses sys.argv[1:]

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Print the flow diagram of an adapter configuration as JSON",
    )
    parser.add_argument("file", type=Path, help="Configuration markup file")
    parser.add_argument(
        "--adapter",
        default=None,
        help="Adapter to draw (default: the first adapter in the file)",
    )
    parser.add_argument(
        "--horizontal",
        action="store_true",
        help="Lay out uncoordinated nodes left to right instead of top to bottom",
    )
    parser.add_argument(
        "--write",
        action="store_true",
        help="Store fallback positions back into the file",
    )
    parser.add_argument(
        "--trace",
        metavar="CATEGORIES",
        default=None,
        help="Trace to stderr: 1 for all, or a list such as SYNC,SURGERY",
    )
    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """Application entry point."""
    options = parse_args(args)
    if options.trace is not None:
        configure(options.trace)
    trace("Application starting", "MAIN")
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    settings_manager = get_settings()
    settings_manager.ensure_file_complete()

    try:
        original = options.file.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Cannot read {options.file}: {e}", file=sys.stderr)
        return 2

    sync = FlowSynchronizer(settings_manager.settings)
    errors: List[str] = []
    sync.error_raised.connect(errors.append)

    sync.session.selected_adapter_name = options.adapter
    sync.session.layout_mode = LayoutMode.HORIZONTAL if options.horizontal else LayoutMode.VERTICAL
    sync.set_text(to_current_syntax(original))
    view = sync.rebuild()
    close_log()

    if view is None:
        print(f"Cannot draw {options.file}: {'; '.join(errors)}", file=sys.stderr)
        return 1

    if options.write and sync.text != original:
        trace(f"Writing layout to {options.file}", "MAIN")
        options.file.write_text(sync.text, encoding="utf-8")

    json.dump(view.to_dict(), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        trace(f"FATAL: {type(e).__name__}: {e}", "CRASH")
        trace_exception("Fatal exception")
        close_log()
        raise
