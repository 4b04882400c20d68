from giftsync.store.base import Store  # noqa: F401
from giftsync.store.sql import SqlStore  # noqa: F401
