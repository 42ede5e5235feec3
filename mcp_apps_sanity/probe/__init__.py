"""MCP Apps conformance probe: validate a live MCP server's UI extension.

This package drives the connect -> discover -> validate -> classify -> build
sequence against a live MCP endpoint and renders the resulting snapshot,
diagnostics and snapshot diffs.

Entry points: ``mcp_apps_sanity.probe.runner.run_validation()`` and
``mcp_apps_sanity.probe.runner.compare_snapshots()``
"""
