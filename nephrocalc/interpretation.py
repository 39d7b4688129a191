"""
Ordered first-match interpretation bands.

A rule is an explicit list of (predicate, text) bands. The resolver walks the
list in the order the calculator declares and returns the text of the first
band whose predicate holds, so each calculator keeps its own comparison
direction. The final band must be a catch-all.

Rules are plain callables and can be used without the evaluator:

    >>> rule = InterpretationRule(at_least(90, "Normal"), otherwise("Reduced"))
    >>> rule(90)
    'Normal'
"""

from __future__ import annotations

from typing import Any, Callable, List, Mapping, Optional, Union

Text = Union[str, Callable[[float], str]]
Predicate = Callable[[float, Mapping[str, Any]], bool]
Note = Callable[[float, Mapping[str, Any]], Optional[str]]


class Band:
    """One interpretation band: a predicate and the text it yields."""

    __slots__ = ("predicate", "text", "condition", "catch_all")

    def __init__(self, predicate: Predicate, text: Text, condition: str, catch_all: bool = False):
        self.predicate = predicate
        self.text = text
        self.condition = condition
        self.catch_all = catch_all

    def matches(self, value: float, inputs: Mapping[str, Any]) -> bool:
        return self.catch_all or bool(self.predicate(value, inputs))

    def render(self, value: float) -> str:
        if callable(self.text):
            return self.text(value)
        return self.text

    def __repr__(self) -> str:
        return f"Band({self.condition!r})"


def at_least(threshold: float, text: Text) -> Band:
    return Band(lambda v, _: v >= threshold, text, f">= {threshold:g}")


def above(threshold: float, text: Text) -> Band:
    return Band(lambda v, _: v > threshold, text, f"> {threshold:g}")


def below(threshold: float, text: Text) -> Band:
    return Band(lambda v, _: v < threshold, text, f"< {threshold:g}")


def at_most(threshold: float, text: Text) -> Band:
    return Band(lambda v, _: v <= threshold, text, f"<= {threshold:g}")


def between(low: float, high: float, text: Text) -> Band:
    """Inclusive on both ends."""
    return Band(lambda v, _: low <= v <= high, text, f"{low:g} to {high:g}")


def strictly_between(low: float, high: float, text: Text) -> Band:
    return Band(lambda v, _: low < v < high, text, f"between {low:g} and {high:g} (exclusive)")


def equals(target: float, text: Text) -> Band:
    return Band(lambda v, _: v == target, text, f"= {target:g}")


def when(predicate: Predicate, text: Text, condition: str) -> Band:
    """Band whose predicate also sees the evaluated inputs."""
    return Band(predicate, text, condition)


def otherwise(text: Text) -> Band:
    return Band(lambda v, _: True, text, "otherwise", catch_all=True)


class InterpretationRule:
    """Callable ``(value, inputs=None) -> text`` over an ordered band list."""

    def __init__(self, *bands: Band, note: Optional[Note] = None):
        if not bands:
            raise ValueError("An interpretation rule needs at least one band")
        if not bands[-1].catch_all:
            raise ValueError("The last interpretation band must be a catch-all")
        self.bands = tuple(bands)
        self.note = note

    def __call__(self, value: float, inputs: Optional[Mapping[str, Any]] = None) -> str:
        context = inputs or {}
        text = ""
        for band in self.bands:
            if band.matches(value, context):
                text = band.render(value)
                break
        if self.note is not None:
            extra = self.note(value, context)
            if extra:
                text = f"{text}\n\n{extra}"
        return text

    def describe(self) -> List[str]:
        lines = []
        for band in self.bands:
            text = band.text if isinstance(band.text, str) else "(computed from value)"
            lines.append(f"{band.condition}: {text}")
        return lines

    def __repr__(self) -> str:
        return f"InterpretationRule({len(self.bands)} bands)"
