"""
SensorPush Bridge
=================

Python package that keeps a live, local picture of a SensorPush account.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (what does a sensor / sample look like?)
- services/  = Workers (log in, talk to the cloud API, poll, reconcile)
- routers/   = HTTP endpoints for the host application
- utils/     = Small helpers (input validation)
- config.py  = Settings loaded from the environment
- main.py    = Puts it all together and starts the server
"""

__version__ = "0.1.0"
