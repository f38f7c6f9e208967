# Import individual CRUD modules so they can be accessed via the package
from . import crud_user  # noqa
from . import crud_discovery  # noqa
from . import crud_message  # noqa

__all__ = [
    "crud_user",
    "crud_discovery",
    "crud_message",
]
