"""Dependency Injection Container Module.

Usage:
------
    from contentscope.core.config import settings
    from contentscope.core.container import create_container

    container = create_container(settings, schemas, entity_manager)
    outcome = await container.content_manager.find(ctx, uid, params)

    # In tests (construct directly with fakes)
    from contentscope.core.container import Container

Module structure:
-----------------
    container/
    ├── __init__.py      # This file - exports public API
    ├── container.py     # Container dataclass (serves)
    └── factory.py       # create_container() (builds)
"""

from contentscope.core.container.container import Container
from contentscope.core.container.factory import create_container

__all__ = ["Container", "create_container"]
