"""Optimistic versioning for aggregates carrying a ``revision`` counter.

A writer loads an aggregate, mutates it, and saves it through
``save_revisioned``. The stored copy is re-read right before the write; if
somebody else saved in between, the write is refused instead of silently
overwriting their change.
"""

from protean.exceptions import ObjectNotFoundError

from checkout.exceptions import ConcurrentModification


def save_revisioned(repo, aggregate):
    expected = aggregate.revision or 0
    try:
        stored = repo.get(aggregate.id)
    except ObjectNotFoundError:
        stored = None

    if stored is not None and (stored.revision or 0) != expected:
        raise ConcurrentModification(
            aggregate.__class__.__name__,
            aggregate.id,
            expected=expected,
            found=stored.revision or 0,
        )

    aggregate.revision = expected + 1
    repo.add(aggregate)
    return aggregate
