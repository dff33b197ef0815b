"""
TermHierarchyResolver

Ancestor lookup for inherited restrictions, name-to-id resolution and the
vocabulary filter that decides which terms take part in restriction.
"""

import logging
from collections import deque
from collections.abc import Iterable, Iterator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from term_access.exceptions import HierarchyError, TermNotFoundError
from term_access.models.term import Term, term_hierarchy

logger = logging.getLogger(__name__)


class TermHierarchyResolver:
    def __init__(
        self,
        db: AsyncSession,
        inheritance_enabled: bool = False,
        max_depth: int = 64,
        vocabularies: Iterable[str] | None = None,
    ) -> None:
        self.db = db
        self.inheritance_enabled = inheritance_enabled
        self.max_depth = max_depth
        self.vocabularies = frozenset(vocabularies or ())

    async def get_parent_ids(self, term_id: int) -> set[int]:
        result = await self.db.execute(
            select(term_hierarchy.c.parent_id).where(term_hierarchy.c.term_id == term_id)
        )
        return set(result.scalars().all())

    async def get_ancestors(self, term_id: int) -> list[int]:
        """
        Ancestors of *term_id*, nearest first.

        Empty when inheritance is disabled or the term is a root. Raises
        HierarchyError if the reachable part of the tree contains a cycle or
        is deeper than ``max_depth``.
        """
        if not self.inheritance_enabled:
            return []

        parents = await self._load_parent_map(term_id)
        self._check_acyclic(term_id, parents)

        ancestors: list[int] = []
        seen = {term_id}
        queue = deque(sorted(parents.get(term_id, ())))
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            ancestors.append(current)
            queue.extend(sorted(parents.get(current, ())))
        logger.debug("Ancestors of term %s: %s", term_id, ancestors)
        return ancestors

    async def resolve_id_by_name(self, name: str, vocabulary: str | None = None) -> int:
        """Id of the term called *name*; lowest id wins on duplicates."""
        query = select(Term.id).where(Term.name == name)
        if vocabulary is not None:
            query = query.where(Term.vocabulary == vocabulary)
        result = await self.db.execute(query.order_by(Term.id).limit(1))
        term_id = result.scalar_one_or_none()
        if term_id is None:
            raise TermNotFoundError(name=name)
        return term_id

    async def participating_term_ids(self, term_ids: Iterable[int]) -> set[int]:
        """Drop terms whose vocabulary does not take part in restriction."""
        wanted = set(term_ids)
        if not wanted or not self.vocabularies:
            return wanted
        result = await self.db.execute(
            select(Term.id).where(Term.id.in_(wanted), Term.vocabulary.in_(self.vocabularies))
        )
        return set(result.scalars().all())

    async def _load_parent_map(self, term_id: int) -> dict[int, set[int]]:
        parents: dict[int, set[int]] = {}
        frontier = {term_id}
        depth = 0
        while frontier:
            if depth > self.max_depth:
                raise HierarchyError(term_id, f"deeper than {self.max_depth} levels")
            result = await self.db.execute(
                select(term_hierarchy.c.term_id, term_hierarchy.c.parent_id).where(
                    term_hierarchy.c.term_id.in_(frontier)
                )
            )
            for current in frontier:
                parents.setdefault(current, set())
            next_frontier: set[int] = set()
            for child, parent in result.all():
                parents[child].add(parent)
                next_frontier.add(parent)
            frontier = next_frontier - parents.keys()
            depth += 1
        return parents

    @staticmethod
    def _check_acyclic(term_id: int, parents: dict[int, set[int]]) -> None:
        # Iterative DFS; a parent still on the stack closes a cycle
        on_stack: set[int] = set()
        done: set[int] = set()
        stack: list[tuple[int, Iterator[int]]] = [(term_id, iter(sorted(parents.get(term_id, ()))))]
        on_stack.add(term_id)
        while stack:
            node, remaining = stack[-1]
            parent = next(remaining, None)
            if parent is None:
                stack.pop()
                on_stack.discard(node)
                done.add(node)
                continue
            if parent in on_stack:
                raise HierarchyError(term_id, f"cycle through term {parent}")
            if parent not in done:
                on_stack.add(parent)
                stack.append((parent, iter(sorted(parents.get(parent, ())))))
