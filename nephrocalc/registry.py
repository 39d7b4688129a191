"""
Calculator registry: lookup by id and category, plus catalog search.

The default ``REGISTRY`` is built once from the catalog at import time and
is never mutated. ``Registry`` can be constructed over any sequence of
definitions, which lets tests inject alternate calculator sets.
"""

import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from nephrocalc.catalog import CATALOG
from nephrocalc.errors import UnknownAnalyte, UnknownCalculator
from nephrocalc.models import CalculatorDefinition
from nephrocalc.units import get_analyte

logger = logging.getLogger(__name__)

# Search rank per matching field, lower is better
_SEARCH_FIELDS = ("name", "description", "category")


class Registry:
    """Read-only index of calculator definitions."""

    def __init__(self, definitions: Iterable[CalculatorDefinition],
                 runners: Optional[Dict[str, Callable]] = None):
        by_id: Dict[str, CalculatorDefinition] = {}
        by_category: Dict[str, List[CalculatorDefinition]] = {}
        for definition in definitions:
            if definition.id in by_id:
                raise ValueError(f"Duplicate calculator id: {definition.id}")
            for spec in definition.inputs:
                if spec.analyte is None:
                    continue
                try:
                    conv = get_analyte(spec.analyte)
                except UnknownAnalyte:
                    raise ValueError(
                        f"{definition.id}.{spec.id}: unknown analyte {spec.analyte!r}"
                    ) from None
                if spec.unit not in conv.units:
                    raise ValueError(
                        f"{definition.id}.{spec.id}: {spec.unit!r} is not a unit of {spec.analyte}"
                    )
            by_id[definition.id] = definition
            by_category.setdefault(definition.category, []).append(definition)
        self._by_id = by_id
        self._by_category = {k: tuple(v) for k, v in by_category.items()}
        self._runners = dict(runners or {})

    # ── Lookup ──────────────────────────────────────────────────────────────

    def get_by_id(self, calc_id: str) -> Optional[CalculatorDefinition]:
        return self._by_id.get(calc_id)

    def require(self, calc_id: str) -> CalculatorDefinition:
        definition = self._by_id.get(calc_id)
        if definition is None:
            raise UnknownCalculator(calc_id)
        return definition

    def get_by_category(self, category: str) -> List[CalculatorDefinition]:
        return list(self._by_category.get(category, ()))

    def list_categories(self) -> List[str]:
        return sorted(self._by_category)

    def runner_for(self, calc_id: str) -> Callable:
        """The formula runner registered for ``calc_id``."""
        self.require(calc_id)
        try:
            return self._runners[calc_id]
        except KeyError:
            raise UnknownCalculator(calc_id) from None

    # ── Search ──────────────────────────────────────────────────────────────

    def search(self, query: str, limit: Optional[int] = None) -> List[CalculatorDefinition]:
        """Case-insensitive substring search over name, description and category.

        Matches on name rank before matches on description, which rank before
        matches on category; ties keep catalog order. A blank query matches
        nothing.
        """
        needle = (query or "").strip().lower()
        if not needle:
            return []
        ranked = []
        for position, definition in enumerate(self._by_id.values()):
            for rank, field in enumerate(_SEARCH_FIELDS):
                if needle in getattr(definition, field).lower():
                    ranked.append((rank, position, definition))
                    break
        ranked.sort(key=lambda item: (item[0], item[1]))
        results = [definition for _, _, definition in ranked]
        if limit is not None:
            results = results[:max(limit, 0)]
        return results

    # ── Container protocol ──────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[CalculatorDefinition]:
        return iter(self._by_id.values())

    def __contains__(self, calc_id: object) -> bool:
        return calc_id in self._by_id

    def __repr__(self) -> str:
        return f"Registry({len(self)} calculators, {len(self._by_category)} categories)"


def _default_registry() -> Registry:
    from nephrocalc.calculators import CALCULATORS

    runners = {calc_id: entry["run"] for calc_id, entry in CALCULATORS.items()}
    registry = Registry(CATALOG, runners)
    logger.debug(f"Loaded {len(registry)} calculators")
    return registry


REGISTRY = _default_registry()
