# Import models so Alembic and Base metadata are aware of them
from .cards import Card, Tag, CardTag  # noqa: F401
