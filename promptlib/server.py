from mcp.server.fastmcp import FastMCP

from . import config
from .library import PromptLibrary
from .storage import SQLiteBlobStore
from .tools.prompts import register_tools as register_prompt_tools
from .tools.transfer import register_tools as register_transfer_tools

mcp = FastMCP("promptlib")
library = PromptLibrary(SQLiteBlobStore(quota_bytes=config.quota_bytes()))
register_prompt_tools(mcp, library)
register_transfer_tools(mcp, library)


def main():
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
