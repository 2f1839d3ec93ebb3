"""
Shared Flask extensions.

Created here without an app so blueprints can import them at module load;
create_app() binds them.
"""

from __future__ import annotations

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["200 per hour"])
