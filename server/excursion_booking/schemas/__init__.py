"""Pydantic schemas for request/response validation."""

from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .excursion import *  # noqa: F403
from .health import *  # noqa: F403
from .notification import *  # noqa: F403
