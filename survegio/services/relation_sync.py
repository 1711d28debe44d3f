"""Synchronisation of many-to-many assignment relations.

Computes the keep/create/delete delta between the persisted junction rows
of a survey relation and a newly desired member set. Members that stay
assigned keep their junction id; the delta is applied by the store in a
single replace-style write.
"""

from typing import Iterable

from survegio.schemas.assignment import AssignmentDelta, AssignmentMapping
from survegio.logging_config import get_logger

logger = get_logger(__name__)


class RelationSynchronizer:
    """Pure diffing of assignment relations (no I/O).

    Used for both the class relation and the student relation of a survey;
    only the id domain differs.
    """

    @staticmethod
    def diff(existing: AssignmentMapping, desired: Iterable[int]) -> AssignmentDelta:
        """Compute the minimal delta from ``existing`` to ``desired``.

        Args:
            existing: Persisted member -> junction mapping
            desired: Member ids that should be assigned after the save

        Returns:
            AssignmentDelta where kept and created members together equal
            ``desired`` exactly and deleted junctions are those of removed
            members. No member appears in more than one category.

        Example:
            >>> existing = AssignmentMapping(
            ...     relation=RelationName.CLASSES, junctions={10: 90, 11: 91}
            ... )
            >>> delta = RelationSynchronizer.diff(existing, [11, 12])
            >>> delta.to_keep, delta.to_create, delta.to_delete
            ([(11, 91)], [12], [90])
        """
        # Ordered, de-duplicated copy of the desired members
        wanted = dict.fromkeys(desired)

        to_keep: list[tuple[int, int]] = []
        to_delete: list[int] = []
        for member_id, junction_id in existing.junctions.items():
            if member_id in wanted:
                to_keep.append((member_id, junction_id))
            else:
                to_delete.append(junction_id)

        to_create = [member_id for member_id in wanted if member_id not in existing.junctions]

        delta = AssignmentDelta(
            relation=existing.relation,
            to_keep=to_keep,
            to_create=to_create,
            to_delete=to_delete,
        )
        logger.debug(
            f"Diffed {existing.relation.value}: keep={len(to_keep)} "
            f"create={len(to_create)} delete={len(to_delete)}"
        )
        return delta

    @staticmethod
    def apply(existing: AssignmentMapping, delta: AssignmentDelta, new_junction_ids: Iterable[int]) -> AssignmentMapping:
        """Mapping the store holds after a delta has been written.

        Args:
            existing: Mapping the delta was computed from
            delta: Delta that was written
            new_junction_ids: Junction ids the store assigned to
                ``delta.to_create``, in the same order

        Returns:
            The resulting AssignmentMapping
        """
        junctions = dict(delta.to_keep)
        junctions.update(zip(delta.to_create, new_junction_ids))
        return AssignmentMapping(relation=existing.relation, junctions=junctions)
