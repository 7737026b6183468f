from __future__ import annotations

from tasktracker.config import load_config
from tasktracker.store.factory import create_table_client
from tasktracker.tasks.operations import TaskOperations

from .app import create_app

_config = load_config()
_client = create_table_client(_config)
app = create_app(TaskOperations(_client, table=_config.table), on_shutdown=_client.aclose)
