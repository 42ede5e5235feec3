"""mcp-apps-sanity: compliance snapshots and snapshot diffs for MCP Apps servers.

Connects to a live MCP server, inspects its ``io.modelcontextprotocol/ui``
extension (UI resources, tool linkage, CSP, permissions, display modes,
theming, graceful degradation) and records the outcome as a comparable
snapshot.  The ``compare`` subcommand diffs two saved snapshots.
"""

__version__ = "0.3.1"

from .probe.runner import compare_snapshots, run_validation  # noqa: E402

__all__ = ["__version__", "compare_snapshots", "run_validation"]
