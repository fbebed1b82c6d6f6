#!/usr/bin/env python3
"""
Runs the memory server.

    --transport http   FastAPI routes plus MCP streamable HTTP at /mcp (uvicorn)
    --transport stdio  MCP tools only, over stdio
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from remora.core.config import get_server_host, get_server_port


def run_stdio():
    from remora.api.tools import build_mcp_server
    from remora.core.bootstrap import rebuild_vector_index
    from remora.core.config import rebuild_on_startup
    from remora.core.db import init_db
    from remora.core.store import MemoryStore

    store = MemoryStore.from_config()
    init_db()
    if rebuild_on_startup():
        rebuild_vector_index(store.index, store.repository)

    build_mcp_server(store).run(transport="stdio")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run the Remora memory server")
    parser.add_argument("--transport", choices=["http", "stdio"], default="http")
    parser.add_argument("--host", default=get_server_host())
    parser.add_argument("--port", type=int, default=get_server_port())
    args = parser.parse_args(argv)

    if args.transport == "stdio":
        run_stdio()
        return

    import uvicorn
    uvicorn.run("remora.api.main:create_app", factory=True, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
