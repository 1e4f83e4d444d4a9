# src/targetflow/dsl.py
from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Union

from .errors import UnknownTargetError
from .model import Action, Predicate, Target


# A reference to another target: the builder itself (identity handle) or its
# name, which may be declared later in the file.
TargetRef = Union["TargetBuilder", str]


def _ref_name(ref: TargetRef) -> str:
    if isinstance(ref, TargetBuilder):
        return ref.name
    if isinstance(ref, str):
        return ref
    raise TypeError(f"Target reference must be a TargetBuilder or a name, got {type(ref).__name__}")


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class TargetBuilder:
    """
    Records a target declaration. Nothing runs and nothing is looked up here;
    edges stay as references until `TargetRegistry.freeze()`.

        compile_ = (
            build.target("Compile")
            .depends_on(restore)
            .executes(lambda p: compile_solution(p))
        )
    """

    def __init__(self, name: str):
        self.name = name
        self._action: Optional[Action] = None
        self._depends_on: list[TargetRef] = []
        self._after: list[TargetRef] = []
        self._before: list[TargetRef] = []
        self._triggers: list[TargetRef] = []
        self._predicates: list[Predicate] = []
        self._requires: list[str] = []
        self._listed: bool = True
        self._description: str = ""

    def depends_on(self, *targets: TargetRef):
        self._depends_on.extend(targets)
        return self

    def after(self, *targets: TargetRef):
        self._after.extend(targets)
        return self

    def before(self, *targets: TargetRef):
        self._before.extend(targets)
        return self

    def triggers(self, *targets: TargetRef):
        self._triggers.extend(targets)
        return self

    def only_when(self, *predicates: Predicate):
        self._predicates.extend(predicates)
        return self

    def requires(self, *parameters: str):
        self._requires.extend(parameters)
        return self

    def unlisted(self):
        self._listed = False
        return self

    def description(self, text: str):
        self._description = text
        return self

    def executes(self, action: Action):
        if self._action is not None:
            raise ValueError(f"Target '{self.name}' already has an action")
        self._action = action
        return self

    def build(self, known: "set[str]") -> Target:
        def resolve(kind: str, refs: List[TargetRef]) -> tuple[str, ...]:
            names: list[str] = []
            for ref in refs:
                name = _ref_name(ref)
                if name not in known:
                    raise UnknownTargetError(
                        f"Target '{self.name}' {kind} unknown target '{name}'. "
                        f"Known targets: {sorted(known)}"
                    )
                if name not in names:
                    names.append(name)
            return tuple(names)

        return Target(
            name=self.name,
            action=self._action,
            depends_on=resolve("depends on", self._depends_on),
            after=resolve("runs after", self._after),
            before=resolve("runs before", self._before),
            triggers=resolve("triggers", self._triggers),
            predicates=tuple(self._predicates),
            requires=tuple(self._requires),
            listed=self._listed,
            description=self._description,
        )

    def __repr__(self) -> str:
        return f"TargetBuilder({self.name!r})"


# ---------------------------------------------------------------------
# Registry + frozen graph
# ---------------------------------------------------------------------

class TargetGraph:
    """Immutable, fully resolved set of targets (declaration order kept)."""

    def __init__(self, targets: List[Target], default: str | None = None):
        self._targets: Dict[str, Target] = {t.name: t for t in targets}
        self.default = default

    def __getitem__(self, name: str) -> Target:
        try:
            return self._targets[name]
        except KeyError:
            raise UnknownTargetError(
                f"Unknown target '{name}'. Known targets: {sorted(self._targets)}"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._targets

    def __iter__(self) -> Iterator[Target]:
        return iter(self._targets.values())

    def __len__(self) -> int:
        return len(self._targets)

    @property
    def names(self) -> list[str]:
        return list(self._targets)

    def listed(self) -> list[Target]:
        return [t for t in self._targets.values() if t.listed]


class TargetRegistry:
    """Collects target declarations, then freezes them into a TargetGraph."""

    def __init__(self):
        self._builders: Dict[str, TargetBuilder] = {}
        self._default: str | None = None
        self._graph: TargetGraph | None = None

    def target(self, name: str) -> TargetBuilder:
        if self._graph is not None:
            raise RuntimeError("Targets cannot be declared after the registry is frozen")
        if name in self._builders:
            raise ValueError(f"Duplicate target name: {name}")
        builder = TargetBuilder(name)
        self._builders[name] = builder
        return builder

    def default(self, ref: TargetRef) -> None:
        self._default = _ref_name(ref)

    def freeze(self) -> TargetGraph:
        """Resolve every edge in one pass. Repeated calls return the same graph."""
        if self._graph is None:
            known = set(self._builders)
            targets = [b.build(known) for b in self._builders.values()]
            if self._default is not None and self._default not in known:
                raise UnknownTargetError(f"Default target '{self._default}' is not declared")
            self._graph = TargetGraph(targets, default=self._default)
        return self._graph


def target(
    name: str,
    action: Optional[Action] = None,
    *,
    depends_on: Optional[List[str]] = None,
    after: Optional[List[str]] = None,
    before: Optional[List[str]] = None,
    triggers: Optional[List[str]] = None,
    only_when: Optional[List[Predicate]] = None,
    requires: Optional[List[str]] = None,
    listed: bool = True,
    description: str = "",
) -> Target:
    """Functional helper for small graphs and tests: names only, no builder."""
    return Target(
        name=name,
        action=action,
        depends_on=tuple(depends_on or ()),
        after=tuple(after or ()),
        before=tuple(before or ()),
        triggers=tuple(triggers or ()),
        predicates=tuple(only_when or ()),
        requires=tuple(requires or ()),
        listed=listed,
        description=description,
    )


def graph(*targets: Target, default: str | None = None) -> TargetGraph:
    """
    Build a TargetGraph from plain Target records, checking names the way
    the registry does.
    """
    names = [t.name for t in targets]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise ValueError(f"Duplicate target names found: {dupes}")
    known = set(names)
    for t in targets:
        for ref in (*t.depends_on, *t.after, *t.before, *t.triggers):
            if ref not in known:
                raise UnknownTargetError(
                    f"Target '{t.name}' references unknown target '{ref}'. "
                    f"Known targets: {sorted(known)}"
                )
    return TargetGraph(list(targets), default=default)
