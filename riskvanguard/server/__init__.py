"""
RiskVanguard Server - HTTP API over the analysis pipeline and workflow engine.

Run with:
    riskvanguard-server              # CLI entry point
    python -m riskvanguard.server    # Module entry point

Or programmatically:
    from riskvanguard.server import RiskVanguardServer
    server = RiskVanguardServer(port=8000)
    server.run()
"""

from .app import RiskVanguardServer, create_app
from .config import ServerConfig
from .database import Database, DatabaseStore, get_database

__all__ = [
    "create_app",
    "RiskVanguardServer",
    "ServerConfig",
    "get_database",
    "Database",
    "DatabaseStore",
]
