"""Main module for CatClient API.

The launcher core is split in small modules, one per installation stage, and every stage
reports its progress to a `catclient.event.Watcher`. The `catclient.launcher` module ties
all stages together, this is the place to start reading.
"""

LAUNCHER_NAME = "catclient"
LAUNCHER_VERSION = "1.0.0"
LAUNCHER_AUTHORS = ["CatClient contributors"]
LAUNCHER_COPYRIGHT = "CatClient  Copyright (C) 2024  CatClient contributors"
LAUNCHER_URL = "https://github.com/catclient/catclient"
