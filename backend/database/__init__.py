from .connection import get_engine, get_session_factory, init_db, Base

# Import models to ensure they are registered with Base
from .participant_models import ParticipantDB

__all__ = [
    'get_engine', 'get_session_factory', 'init_db', 'Base',
    'ParticipantDB',
]
