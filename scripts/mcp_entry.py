"""Thin entry point for the plan-sync-mcp console script.

Routes to mcp_server.py at the repo root.
"""

import os
import sys


def main():
    """Launch the plan-sync MCP server."""
    # mcp_server.py lives at repo root (one level up from scripts/)
    repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    server_py = os.path.join(repo_root, "mcp_server.py")

    if not os.path.isfile(server_py):
        print("Error: mcp_server.py not found. Install in editable mode (pip install -e .)")
        print("or run: python3 /path/to/plan-sync/mcp_server.py")
        sys.exit(1)

    sys.path.insert(0, repo_root)
    from mcp_server import main as server_main
    server_main()


if __name__ == "__main__":
    main()
