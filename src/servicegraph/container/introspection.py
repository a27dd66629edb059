"""Container counters and static checks over the descriptor store."""

from ..interfaces import ContainerMetrics, ServiceKey, ValidationResult, describe_key
from .descriptors import DescriptorStore

_EXHAUSTED = object()


class MetricsRecorder:
    """Monotonic counters for one container.

    Counters only ever go up; a fresh container starts from zero.
    ``track_timings`` controls whether the resolve-duration average is kept.
    """

    def __init__(self, track_timings: bool = True):
        self.track_timings = track_timings
        self.total_registrations = 0
        self.total_resolutions = 0
        self.error_count = 0
        self.circular_dependencies_detected = 0
        self._timed_calls = 0
        self._avg_resolution_time_ms = 0.0

    def record_registration(self) -> None:
        self.total_registrations += 1

    def record_resolution(self) -> None:
        self.total_resolutions += 1

    def record_error(self) -> None:
        self.error_count += 1

    def record_cycle(self) -> None:
        self.circular_dependencies_detected += 1

    def record_timing(self, elapsed_ms: float) -> None:
        if not self.track_timings:
            return
        self._timed_calls += 1
        # Running mean over successful top-level resolves
        self._avg_resolution_time_ms += (elapsed_ms - self._avg_resolution_time_ms) / self._timed_calls

    def snapshot(self) -> ContainerMetrics:
        return ContainerMetrics(
            total_registrations=self.total_registrations,
            total_resolutions=self.total_resolutions,
            error_count=self.error_count,
            circular_dependencies_detected=self.circular_dependencies_detected,
            avg_resolution_time_ms=self._avg_resolution_time_ms,
        )


def validate_store(store: DescriptorStore) -> ValidationResult:
    """Report every declared dependency that has no registration.

    Reads the store only; nothing is constructed or cached.
    """
    errors = []
    for token, descriptor in store.items():
        for dep in descriptor.dependencies:
            if dep not in store:
                errors.append(
                    f"Service {describe_key(token)} depends on unregistered service {describe_key(dep)}"
                )
    return ValidationResult(valid=not errors, errors=errors)


def dependency_graph(store: DescriptorStore) -> dict[ServiceKey, tuple]:
    """Map each registered token to its declared dependencies."""
    return {token: descriptor.dependencies for token, descriptor in store.items()}


def find_cycles(store: DescriptorStore) -> list[list]:
    """List dependency cycles among registered descriptors.

    Each cycle is reported once, as the path from its first-registered
    member back to itself (``[A, B, A]``). Missing dependencies are ignored
    here; ``validate_store`` reports those.
    """
    graph = dependency_graph(store)
    order = {token: i for i, token in enumerate(graph)}
    cycles = []
    seen = set()

    # Iterative DFS; WHITE=unvisited, GREY=on current path, BLACK=done
    WHITE, GREY, BLACK = 0, 1, 2
    color = {token: WHITE for token in graph}

    for root in graph:
        if color[root] != WHITE:
            continue
        path = [root]
        color[root] = GREY
        iterators = [iter(graph[root])]
        while iterators:
            dep = next(iterators[-1], _EXHAUSTED)
            if dep is _EXHAUSTED:
                iterators.pop()
                color[path.pop()] = BLACK
                continue
            if dep not in graph:
                continue
            if color[dep] == GREY:
                cycle = path[path.index(dep):]
                # Rotate so the earliest-registered member leads
                start = min(range(len(cycle)), key=lambda i: order[cycle[i]])
                cycle = cycle[start:] + cycle[:start]
                key = tuple(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(cycle + [cycle[0]])
            elif color[dep] == WHITE:
                color[dep] = GREY
                path.append(dep)
                iterators.append(iter(graph[dep]))
    return cycles
