"""Module entrypoint.

Allows:
    python -m jlog_analyzer
"""

from __future__ import annotations

from jlog_analyzer.server.log_server import main

if __name__ == "__main__":
    main()
