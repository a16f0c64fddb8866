"""Hierarchy resolution: find a test node by its slash-delimited path.

The aggregator only talks to the `TestResolver` interface, so the lookup
strategy can be swapped without touching the state machine.

Strategies:
- leaf-name: exact root key, then a depth-first search comparing each
  sub-test's name with the leaf segment of the path. Two root tests that
  share a sub-test name are ambiguous; the first match in insertion order
  wins. This is the default.
- path: walks the path one segment at a time from its root. Unambiguous.
"""

from typing import Optional, Protocol

from trep.core.models import TestResult


class TestResolver(Protocol):
    """Locate a node in a package's test tree."""

    name: str

    def find(self, path: str, test_results: dict[str, TestResult]) -> Optional[TestResult]:
        ...


class LeafNameResolver:
    """Root lookup by full path, then recursive lookup by leaf name."""

    name = "leaf-name"

    def find(self, path: str, test_results: dict[str, TestResult]) -> Optional[TestResult]:
        if path in test_results:
            return test_results[path]

        leaf = path.rsplit("/", 1)[-1]
        for root in test_results.values():
            found = self._search(leaf, root.subtests)
            if found is not None:
                return found
        return None

    def _search(self, leaf: str, subtests: list[TestResult]) -> Optional[TestResult]:
        for subtest in subtests:
            if subtest.name == leaf:
                return subtest
            found = self._search(leaf, subtest.subtests)
            if found is not None:
                return found
        return None


class PathResolver:
    """Segment-by-segment lookup keyed on the full path."""

    name = "path"

    def find(self, path: str, test_results: dict[str, TestResult]) -> Optional[TestResult]:
        root_name, *rest = path.split("/")
        node = test_results.get(root_name)
        for segment in rest:
            if node is None:
                return None
            node = next((s for s in node.subtests if s.name == segment), None)
        return node


RESOLVERS: dict[str, type] = {
    LeafNameResolver.name: LeafNameResolver,
    PathResolver.name: PathResolver,
}


def get_resolver(name: str) -> TestResolver:
    """Build a resolver from its name.

    Args:
        name: "leaf-name" or "path"

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return RESOLVERS[name]()
    except KeyError:
        valid = ", ".join(RESOLVERS)
        raise ValueError(f"Invalid resolver '{name}'. Valid resolvers: {valid}")
