from __future__ import annotations


class DuplicateRecordError(ValueError):
    """A write collided with a uniqueness constraint.

    Raised by every repo implementation (in-memory and Postgres) so the
    service layer can treat "already exists" uniformly, whether it was
    caught by a dict lookup or by the database's unique index.
    """
