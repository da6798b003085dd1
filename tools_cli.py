#!/usr/bin/env python3
"""
Tools CLI for the Google Docs structure MCP server

This script allows you to run MCP tools directly without the protocol overhead.
Tools are called as regular Python async functions with the credentials from
GOOGLE_DOCS_TOKEN_PATH.

Usage:
    python tools_cli.py --tool locate_text --document_id "doc_id_here" --search_text "Budget"
    python tools_cli.py --interactive  # Interactive REPL mode
"""
import argparse
import asyncio
import inspect
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables
dotenv_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env')
load_dotenv(dotenv_path=dotenv_path)

# Suppress googleapiclient discovery cache warning
logging.getLogger('googleapiclient.discovery_cache').setLevel(logging.ERROR)

# Configure logging - use WARNING to reduce noise
logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'WARNING'),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def init_server():
    """Initialize the server and import all tools."""
    try:
        from core.server import server, set_transport_mode

        set_transport_mode('stdio')

        # Side-effect import registers the tools on the server
        import gdocs.docs_tools  # noqa: F401

        return server
    except Exception as e:
        logger.error(f"Failed to initialize server: {e}")
        raise


def convert_value_by_type(value: Any, expected_type) -> Any:
    """Convert a string value based on expected type annotation."""
    if value is True:  # Boolean flag (--flag without value)
        return value

    origin = getattr(expected_type, '__origin__', None)

    # Extract the actual type from Optional/Union
    type_args = getattr(expected_type, '__args__', ())
    if type_args and origin not in (list, dict):
        non_none_types = [t for t in type_args if t is not type(None)]
        if non_none_types:
            expected_type = non_none_types[0]
            origin = getattr(expected_type, '__origin__', None)

    if expected_type is bool:
        return value.lower() == 'true'
    elif expected_type is int:
        return int(value)
    elif expected_type is float:
        return float(value)
    elif expected_type in (list, dict) or origin in (list, dict):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    else:
        return value


def convert_value_fallback(value: Any) -> Any:
    """Fallback conversion when no type info is available."""
    if value is True:
        return value
    if value.lower() in ('true', 'false'):
        return value.lower() == 'true'
    elif value.startswith('[') or value.startswith('{'):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    # Numeric strings stay strings without a type hint
    return value


def parse_raw_args(unknown: List[str]) -> Dict[str, Any]:
    """Turn leftover --name value pairs into a dict of raw strings."""
    raw_kwargs = {}
    i = 0
    while i < len(unknown):
        arg = unknown[i]
        if arg.startswith('--'):
            param_name = arg[2:]
            if i + 1 < len(unknown) and not unknown[i + 1].startswith('--'):
                raw_kwargs[param_name] = unknown[i + 1]
                i += 2
            else:
                raw_kwargs[param_name] = True
                i += 1
        else:
            i += 1
    return raw_kwargs


def parse_tool_kwargs(tool, raw_kwargs: Dict[str, Any]) -> Dict[str, Any]:
    """Parse raw kwargs using the tool's type annotations."""
    tool_kwargs = {}
    parameters = {}

    if hasattr(tool, 'fn'):
        try:
            parameters = inspect.signature(tool.fn).parameters
        except (ValueError, TypeError):
            parameters = {}

    for param_name, value in raw_kwargs.items():
        param = parameters.get(param_name)
        if param is not None and param.annotation != inspect.Parameter.empty:
            tool_kwargs[param_name] = convert_value_by_type(value, param.annotation)
        else:
            tool_kwargs[param_name] = convert_value_fallback(value)
    return tool_kwargs


class ToolTester:
    """Helper class to run MCP tools directly."""

    def __init__(self, server_instance):
        self.server = server_instance
        self.tools = {}

    async def _collect_tools(self) -> Dict[str, Any]:
        """Collect all registered tools from the server."""
        tools = {}
        if hasattr(self.server, '_tool_manager'):
            tool_manager = self.server._tool_manager
            if hasattr(tool_manager, '_tools'):
                tools = dict(tool_manager._tools)
        return tools

    async def init_tools(self):
        """Initialize tools collection (must be called after __init__)."""
        self.tools = await self._collect_tools()

    def list_tools(self) -> None:
        """Print all available tools."""
        print("\n📋 Available Tools:")
        print("=" * 60)
        for name, tool in sorted(self.tools.items()):
            desc = tool.description.strip().split('\n')[0] if tool.description else "No description"
            print(f"  • {name}")
            print(f"    {desc}")
            print()

    def get_tool_info(self, tool_name: str) -> None:
        """Print detailed information about a specific tool."""
        if tool_name not in self.tools:
            print(f"❌ Tool '{tool_name}' not found.")
            return

        tool = self.tools[tool_name]
        print(f"\n🔧 Tool: {tool_name}")
        print("=" * 60)
        print(f"Description: {tool.description}")
        print("\nParameters:")

        if hasattr(tool, 'fn'):
            sig = inspect.signature(tool.fn)
            for param_name, param in sig.parameters.items():
                annotation = param.annotation if param.annotation != inspect.Parameter.empty else "Any"
                default = f" = {param.default}" if param.default != inspect.Parameter.empty else ""
                print(f"  • {param_name}: {annotation}{default}")
        print()

    async def call_tool(self, tool_name: str, **kwargs) -> Any:
        """
        Call a tool with the given parameters.

        Docs tools report failures as a JSON error object instead of raising,
        so the result is inspected and an error code is shown when present.
        """
        if tool_name not in self.tools:
            raise ValueError(f"Tool '{tool_name}' not found. Use list_tools() to see available tools.")

        tool = self.tools[tool_name]
        kwargs = {k: v for k, v in kwargs.items() if v is not None}

        print(f"\n🚀 Calling tool: {tool_name}")
        print(f"   Parameters: {kwargs}")
        print("=" * 60)

        try:
            result = await tool.fn(**kwargs)
        except Exception as e:
            print(f"\n❌ Error: {e}")
            logger.exception("Tool execution failed")
            raise

        error = structured_error_of(result)
        if error:
            print(f"\n⚠️  {error['code']}: {error.get('message', '')}")
            if error.get('suggestion'):
                print(f"   💡 {error['suggestion']}")
        else:
            print("\n✅ Result:")
        print("-" * 60)
        print(result)
        print("-" * 60)
        return result


def structured_error_of(result: Any) -> Optional[Dict[str, Any]]:
    """Return the error object when a tool result is a structured error, else None."""
    if not isinstance(result, str) or not result.lstrip().startswith('{'):
        return None
    try:
        payload = json.loads(result)
    except json.JSONDecodeError:
        return None
    if isinstance(payload, dict) and payload.get('error') is True and 'code' in payload:
        return payload
    return None


def prompt_for_parameters(tool) -> Dict[str, Any]:
    """Ask for each tool parameter on stdin; optional ones may be skipped."""
    raw_kwargs = {}
    for param_name, param in inspect.signature(tool.fn).parameters.items():
        if param.default == inspect.Parameter.empty:
            raw_kwargs[param_name] = input(f"  {param_name} (required): ")
            continue
        default_str = f" [default: {param.default}]" if param.default is not None else ""
        value = input(f"  {param_name} (optional){default_str}: ")
        if value:
            raw_kwargs[param_name] = value
    return raw_kwargs


def interactive_mode(tester: ToolTester):
    """Run an interactive REPL for calling tools."""
    print("\n🎯 Interactive Mode")
    print("=" * 60)
    print("Commands:")
    print("  list              - List all available tools")
    print("  info <tool_name>  - Get detailed info about a tool")
    print("  call <tool_name>  - Call a tool (will prompt for parameters)")
    print("  quit              - Exit interactive mode")
    print("=" * 60)

    while True:
        try:
            cmd = input("\n> ").strip()

            if not cmd:
                continue

            if cmd == "quit":
                print("👋 Goodbye!")
                break

            if cmd == "list":
                tester.list_tools()
                continue

            if cmd.startswith("info "):
                tester.get_tool_info(cmd[5:].strip())
                continue

            if cmd.startswith("call "):
                tool_name = cmd[5:].strip()
                if tool_name not in tester.tools:
                    print(f"❌ Tool '{tool_name}' not found.")
                    continue

                tester.get_tool_info(tool_name)
                print("\nEnter parameters (press Enter to skip optional parameters):")
                tool = tester.tools[tool_name]
                raw_kwargs = prompt_for_parameters(tool)
                asyncio.run(tester.call_tool(tool_name, **parse_tool_kwargs(tool, raw_kwargs)))
            else:
                print("❌ Unknown command. Try 'list', 'info <tool>', 'call <tool>', or 'quit'")

        except KeyboardInterrupt:
            print("\n👋 Goodbye!")
            break
        except Exception as e:
            print(f"❌ Error: {e}")


def main():
    parser = argparse.ArgumentParser(
        description="CLI for Google Docs structure MCP tools",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument('--interactive', '-i', action='store_true',
                        help='Run in interactive REPL mode')
    parser.add_argument('--list', '-l', action='store_true',
                        help='List all available tools')
    parser.add_argument('--tool', '-t', type=str,
                        help='Tool name to call')
    parser.add_argument('--info', type=str,
                        help='Show detailed info about a tool')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')

    # Remaining --name value pairs become tool parameters
    args, unknown = parser.parse_known_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    raw_kwargs = parse_raw_args(unknown)

    print("🔧 Initializing server...")
    try:
        server = init_server()
        tester = ToolTester(server)
        asyncio.run(tester.init_tools())
        print(f"✅ Server initialized ({len(tester.tools)} tools loaded)")
    except Exception as e:
        print(f"❌ Failed to initialize: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)

    if args.list:
        tester.list_tools()
        return

    if args.info:
        tester.get_tool_info(args.info)
        return

    if args.interactive:
        interactive_mode(tester)
        return

    if args.tool:
        if args.tool not in tester.tools:
            print(f"❌ Tool '{args.tool}' not found. Use --list to see available tools.")
            sys.exit(1)

        tool = tester.tools[args.tool]
        asyncio.run(tester.call_tool(args.tool, **parse_tool_kwargs(tool, raw_kwargs)))
        return

    parser.print_help()
    print("\n💡 Quick start:")
    print("  python tools_cli.py --list                         # List all tools")
    print("  python tools_cli.py --info locate_table_cell       # Get tool info")
    print("  python tools_cli.py --interactive                  # Interactive mode")
    print("  python tools_cli.py --tool locate_text --document_id DOC_ID --search_text 'Budget'")


if __name__ == "__main__":
    main()
