"""Dependency graph for pipeline stages."""

from collections import defaultdict

from stackctl.core.exceptions import ConfigError
from stackctl.pipeline.models import Stage


class DependencyCycleError(ConfigError):
    """Raised when a circular dependency is detected."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(f"circular dependency detected: {cycle_str}")


class DependencyGraph:
    """Build and order the stage dependency graph (DAG)."""

    def __init__(self, stages: list[Stage]):
        """Initialize the dependency graph.

        Args:
            stages: stages in declared order, with depends_on fields
        """
        self.stages: dict[str, Stage] = {}
        for stage in stages:
            if stage.name in self.stages:
                raise ConfigError(f"duplicate stage name '{stage.name}'")
            self.stages[stage.name] = stage

        self.dependencies: dict[str, set[str]] = defaultdict(set)
        self.dependents: dict[str, set[str]] = defaultdict(set)
        self._build_graph(stages)

    def _build_graph(self, stages: list[Stage]) -> None:
        for stage in stages:
            for dep in stage.depends_on:
                if dep not in self.stages:
                    raise ConfigError(
                        f"stage '{stage.name}' depends on unknown stage '{dep}'"
                    )
                self.dependencies[stage.name].add(dep)
                self.dependents[dep].add(stage.name)

    def validate(self) -> None:
        """Check for cycles.

        Raises:
            DependencyCycleError: if a cycle is detected
        """
        visited: set[str] = set()
        rec_stack: set[str] = set()
        path: list[str] = []

        def visit(node: str) -> None:
            visited.add(node)
            rec_stack.add(node)
            path.append(node)

            for dep in sorted(self.dependencies.get(node, set())):
                if dep not in visited:
                    visit(dep)
                elif dep in rec_stack:
                    cycle_start = path.index(dep)
                    raise DependencyCycleError(path[cycle_start:] + [dep])

            path.pop()
            rec_stack.remove(node)

        for name in self.stages:
            if name not in visited:
                visit(name)

    def execution_order(self) -> list[Stage]:
        """Return a total order that respects every dependency.

        Among stages whose dependencies are satisfied, the one declared
        first runs first, so an already-ordered list comes back unchanged.
        """
        self.validate()

        ordered: list[Stage] = []
        completed: set[str] = set()

        while len(completed) < len(self.stages):
            ready = next(
                name
                for name in self.stages
                if name not in completed
                and self.dependencies.get(name, set()).issubset(completed)
            )
            ordered.append(self.stages[ready])
            completed.add(ready)

        return ordered

    def dependents_of(self, name: str) -> set[str]:
        """All stages that transitively depend on ``name``."""
        found: set[str] = set()
        pending = [name]
        while pending:
            for child in self.dependents.get(pending.pop(), set()):
                if child not in found:
                    found.add(child)
                    pending.append(child)
        return found
