# File: laragen/reciprocity.py
"""
Laragen - Reciprocity Resolver
================================
Derives the reverse side of each detected relationship so both model
classes describe the association:

    ============== ============== ===============================
    source kind    reverse kind   reverse method
    ============== ============== ===============================
    belongsTo      hasMany        plural camel of source model
    hasMany        belongsTo      singular camel of source model
    hasOne         belongsTo      singular camel of source model
    belongsToMany  belongsToMany  plural camel of source model
    ============== ============== ===============================

Polymorphic records are never reversed here; their counterpart travels as a
``suggestedMorph`` produced by the classifier.  The resolver performs no I/O:
it only groups reverse records by the model class they belong in.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from laragen.models import RelationKind, RelationshipRecord
from laragen.utils import model_to_table, to_camel_case, to_plural, to_singular

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.reciprocity")

PendingReverse = Dict[str, List[RelationshipRecord]]


def reverse_of(source_model: str, record: RelationshipRecord) -> Optional[RelationshipRecord]:
    """
    Reverse of *record*, which was detected on *source_model*.

    The returned record belongs in ``record.related_model``'s class.
    Returns ``None`` for polymorphic kinds.
    """
    source_table: str = model_to_table(source_model)

    if record.kind == RelationKind.BELONGS_TO:
        return RelationshipRecord(
            kind=RelationKind.HAS_MANY,
            local_field=record.foreign_field or "id",
            foreign_field=record.local_field,
            foreign_table=source_table,
            related_model=source_model,
            method_name=to_camel_case(to_plural(source_model)),
        )

    if record.kind in (RelationKind.HAS_MANY, RelationKind.HAS_ONE):
        return RelationshipRecord(
            kind=RelationKind.BELONGS_TO,
            local_field=record.foreign_field,
            foreign_field=record.local_field,
            foreign_table=source_table,
            related_model=source_model,
            method_name=to_camel_case(to_singular(source_model)),
        )

    if record.kind == RelationKind.BELONGS_TO_MANY:
        return RelationshipRecord(
            kind=RelationKind.BELONGS_TO_MANY,
            pivot_table=record.pivot_table,
            related_table=source_table,
            related_model=source_model,
            method_name=to_camel_case(to_plural(source_model)),
        )

    return None


def _add(pending: PendingReverse, target: str, record: RelationshipRecord) -> bool:
    bucket: List[RelationshipRecord] = pending.setdefault(target, [])
    if any(existing.method_name == record.method_name for existing in bucket):
        logger.debug("Reverse %s() for %s already pending", record.method_name, target)
        return False
    bucket.append(record)
    return True


class ReciprocityResolver:
    """
    Accumulates reverse relationships across several source models.

    ``pending`` maps each target model to its reverse records, deduplicated
    by method name with the first record seen kept.
    """

    def __init__(self) -> None:
        self.pending: PendingReverse = {}

    def collect(
        self,
        source_model: str,
        records: Iterable[RelationshipRecord],
    ) -> PendingReverse:
        """Reverse records of one model's relationships, also added to ``pending``."""
        batch: PendingReverse = {}
        for record in records:
            reverse: Optional[RelationshipRecord] = reverse_of(source_model, record)
            if reverse is None or not record.related_model:
                continue
            _add(batch, record.related_model, reverse)

        for target, reverses in batch.items():
            for reverse in reverses:
                _add(self.pending, target, reverse)
        return batch

    @staticmethod
    def combine(*pendings: PendingReverse) -> PendingReverse:
        """Merge several pending maps, keeping first-seen records per method name."""
        merged: PendingReverse = {}
        for pending in pendings:
            for target, reverses in pending.items():
                for reverse in reverses:
                    _add(merged, target, reverse)
        return merged

    def __len__(self) -> int:
        return sum(len(v) for v in self.pending.values())

    def __repr__(self) -> str:
        return f"<ReciprocityResolver {len(self)} pending for {len(self.pending)} models>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "PendingReverse",
    "ReciprocityResolver",
    "reverse_of",
]

logger.debug("laragen.reciprocity loaded — %d public symbols.", len(__all__))
