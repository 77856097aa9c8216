# Data module exports
from .models import ClientRecord
from .client_store import ClientStore, ClientMap

__all__ = [
    'ClientRecord',
    'ClientStore',
    'ClientMap'
]
