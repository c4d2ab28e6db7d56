"""Custom SQLAlchemy column types."""

import json

from sqlalchemy import Text, TypeDecorator


class JSONScalar(TypeDecorator):
    """A single JSON scalar (string, number or boolean) stored as TEXT.

    Tree leaves keep their JSON type across the round trip, so ``1``,
    ``"1"`` and ``true`` stay distinguishable.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, (dict, list, tuple)):
            raise TypeError("tree leaves must be JSON scalars")
        return json.dumps(value, ensure_ascii=False)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return json.loads(value)
