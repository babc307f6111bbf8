from . import users
from . import follows
from . import channels
from . import messages
from . import presence

__all__ = [
    "users",
    "follows",
    "channels",
    "messages",
    "presence",
]
