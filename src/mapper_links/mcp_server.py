# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""MCP protocol layer for Mapper Links.

Exposes the navigation service as MCP tools. This layer holds no
navigation logic: every tool translates its arguments into one service call
and formats the result. The service drives a HeadlessEditor, so a jump's
outcome is reported back to the client as the target path and position.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.session import ServerSession

from mapper_links.config import CONFIG_FILENAME, Config
from mapper_links.editor import HeadlessEditor
from mapper_links.logging_setup import DEFAULT_LOG_DIRNAME, setup_logging
from mapper_links.service import MapperNavigationService

logger = logging.getLogger(__name__)


class MapperLinksMCPServer:
    """MCP server exposing mapper navigation tools.

    Registered tools:
    - jump_to: resolve the counterpart of a file and locate a method/statement
    - refresh_all_mappings: rebuild the mapping cache
    - get_mappings: list cached pairings
    - extract_parameters: parameters of a mapper method
    - parse_statement_namespace: namespace of a statement file
    """

    def __init__(
        self,
        project_root: Optional[str] = None,
        config: Optional[Config] = None,
        service: Optional[MapperNavigationService] = None,
    ):
        """Initialize MCP server.

        Args:
            project_root: Workspace root. Defaults to the current directory.
            config: Configuration. If None, loads .mapper_links.yml from the root.
            service: Service instance. If None, one is created over a HeadlessEditor.
        """
        root = Path(project_root or Path.cwd()).resolve()
        if config is None:
            config = Config(root / CONFIG_FILENAME)
        self.config = config

        self.editor = HeadlessEditor()
        if service is None:
            service = MapperNavigationService(config, project_root=str(root), editor=self.editor)
        elif isinstance(service.editor, HeadlessEditor):
            self.editor = service.editor
        self.service = service

        self.mcp = FastMCP(name="mapper-links")
        self._register_tools()

        logger.info("MapperLinksMCPServer initialized")

    def _register_tools(self) -> None:
        """Register MCP tools with the server."""

        @self.mcp.tool()
        async def jump_to(
            file_path: str,
            ctx: Context[ServerSession, None],
            identifier: Optional[str] = None,
        ) -> Dict[str, Any]:
            """Find the counterpart of a mapper interface or statement file.

            Args:
                file_path: Path to a .java mapper interface or .xml statement file
                identifier: Method name or statement id to locate in the counterpart
                ctx: MCP context for logging

            Returns:
                Dictionary with:
                - state: "resolved" or "failed"
                - target_path: Counterpart file, if resolved
                - position: Zero-based line/column of the method or statement
                - reason: Why resolution failed
                - trace: Lookup states visited
            """
            await ctx.info(f"Resolving counterpart of {file_path}")
            return self.jump_to_dict(file_path, identifier)

        @self.mcp.tool()
        async def refresh_all_mappings(ctx: Context[ServerSession, None]) -> Dict[str, Any]:
            """Clear all cached mappings and rescan the workspace.

            Returns:
                Dictionary with the number of mappings established
            """
            await ctx.info("Rescanning workspace")
            count = self.service.refresh_all_mappings()
            await ctx.info(f"Established {count} mappings")
            return {"mappings": count}

        @self.mcp.tool()
        async def get_mappings(ctx: Context[ServerSession, None]) -> Dict[str, Any]:
            """List cached interface -> statement file mappings."""
            mappings = self.service.get_mappings()
            await ctx.info(f"Returning {len(mappings)} mappings")
            return {"mappings": mappings}

        @self.mcp.tool()
        async def extract_parameters(
            namespace: str,
            method_name: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """List the parameters of a mapper method.

            Args:
                namespace: Fully-qualified interface name, e.g. com.example.UserMapper
                method_name: Method to inspect
                ctx: MCP context for logging

            Returns:
                Dictionary with "parameters" (name, type, fields), or null when
                the interface or method cannot be found
            """
            parameters = self.service.extract_parameters(namespace, method_name)
            if parameters is None:
                await ctx.warning(f"Method {namespace}.{method_name} not found")
                return {"parameters": None}
            return {"parameters": [p.to_dict() for p in parameters]}

        @self.mcp.tool()
        async def parse_statement_namespace(
            file_path: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Read the namespace and statement ids declared by a statement file."""
            namespace = self.service.parse_statement_namespace(file_path)
            if namespace is None:
                await ctx.info(f"No namespace in {file_path}")
            return {
                "file_path": file_path,
                "namespace": namespace,
                "statement_ids": self.service.list_statement_ids(file_path),
            }

        logger.info(
            "MCP tools registered: jump_to, refresh_all_mappings, get_mappings, "
            "extract_parameters, parse_statement_namespace"
        )

    def jump_to_dict(self, file_path: str, identifier: Optional[str] = None) -> Dict[str, Any]:
        """Run a jump and describe where the editor ended up."""
        result = self.service.jump_to(file_path, identifier)
        response = result.to_dict()
        last_jump = self.editor.last_jump
        response["jump"] = last_jump.to_dict() if result.jumped and last_jump else None
        return response

    def run(self, transport: str = "stdio") -> None:
        """Run the MCP server.

        Args:
            transport: "stdio" (default), "streamable-http" or "sse"
        """
        logger.info(f"Starting MCP server with {transport} transport")
        self.mcp.run(transport=transport)  # type: ignore[arg-type]

    def shutdown(self) -> None:
        logger.info("Shutting down MCP server")
        self.service.shutdown()


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Mapper Links MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Workspace root to index. Default: current directory",
    )
    parser.add_argument(
        "--transport",
        type=str,
        choices=["stdio", "streamable-http", "sse"],
        default="stdio",
        help="Transport type for MCP server. Default: stdio",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for JSON log files. Default: .mapper_links_logs under the root",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level. Default: INFO",
    )
    parser.add_argument(
        "--no-watch",
        action="store_true",
        help="Do not watch the workspace for file changes",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list] = None) -> None:
    """Main entry point: index the workspace and serve MCP tools."""
    args = parse_args(argv)
    root = (args.root or Path.cwd()).resolve()

    # Console output goes to stderr so the stdio transport stays clean
    log_file = setup_logging(log_dir=args.log_dir or root / DEFAULT_LOG_DIRNAME, log_level=args.log_level)
    logger.info(f"Logging to {log_file}")

    server = MapperLinksMCPServer(project_root=str(root))
    server.service.refresh_all_mappings()
    if not args.no_watch:
        server.service.start_file_watcher()
    try:
        server.run(transport=args.transport)
    finally:
        server.shutdown()


if __name__ == "__main__":
    main()
