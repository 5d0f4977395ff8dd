"""Answer generation behind the ``Generator`` interface."""

from .base import Generator  # noqa: F401
from .chat import ChatModelGenerator, DisabledGenerator  # noqa: F401
from .deps import get_chat_model, get_generator  # noqa: F401
