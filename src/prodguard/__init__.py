"""
prodguard - Production guard for automated agents.

prodguard intercepts an agent's tool calls before they run and blocks the
ones that would mutate a live production system:
- Writes and edits under production directories (safe directories exempt)
- docker stop/rm/kill/... against production containers
- pkill/killall and lsof/fuser kills aimed at production processes or ports
- Servers binding production ports
- rm/mv/cp/chmod/chown in production directories

Example usage:
    $ prodguard hook < tool_call.json
    $ prodguard check --command "docker rm my-db"
    $ prodguard validate
"""

__version__ = "0.1.0"
__author__ = "prodguard Contributors"

__all__ = [
    "__version__",
    "__author__",
]
