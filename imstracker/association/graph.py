"""
Observation transition graph and ranked path search.

Vertices are the real observations plus a virtual source and a virtual sink.
Edges run:
- source -> every real observation
- every real observation -> sink
- every observation of a voltage group -> every observation of the next
  group in decreasing voltage order

Edge weights are -ln(transition probability), so the shortest source->sink
path is the most probable track and the k shortest paths are the k most
probable candidate tracks. The graph is a DAG layered by voltage group.

Algorithm
---------
k_shortest_paths() runs a best-first search keyed on g + h, where g is the
weight of the partial path and h the exact shortest distance from its last
vertex to the sink (dynamic programming over the layers, lowest voltage
first). With an exact h, complete paths leave the heap in non-decreasing
total weight, giving the same ranking as Yen's algorithm on a DAG.
"""

import heapq
import itertools
import logging
import math
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from ..domain.observed_peak import ObservedPeak
from ..domain.voltage_group import VoltageGroup
from .transition import IonTransition

logger = logging.getLogger(__name__)

TransitionFunction = Callable[[ObservedPeak, ObservedPeak], IonTransition]
Path = Tuple[IonTransition, ...]


class ObservationTransitionGraph:
    """Layered DAG over the observations of one target.

    Parameters
    ----------
    observations : iterable of ObservedPeak
        Real observations; each must carry a voltage group
    transition_function : callable
        ``(source, sink) -> IonTransition``, usually a TransitionModel
    """

    def __init__(self, observations: Iterable[ObservedPeak], transition_function: TransitionFunction):
        observations = list(observations)

        self._peaks_by_group: Dict[VoltageGroup, List[ObservedPeak]] = {}
        for observation in observations:
            if observation.is_virtual:
                raise ValueError("Observations must be real peaks")
            self._peaks_by_group.setdefault(observation.voltage_group, []).append(observation)

        groups = list(self._peaks_by_group)
        self._increasing = sorted(groups, key=lambda g: g.mean_voltage_in_volts)
        self._decreasing = sorted(groups, key=lambda g: g.mean_voltage_in_volts, reverse=True)

        self.source = ObservedPeak.virtual()
        self.sink = ObservedPeak.virtual()
        self._vertices = [self.source, self.sink] + observations
        self._out_edges: Dict[ObservedPeak, List[IonTransition]] = {v: [] for v in self._vertices}

        for observation in observations:
            self._add_edge(transition_function(self.source, observation))
            self._add_edge(transition_function(observation, self.sink))

        for current, following in zip(self._decreasing, self._decreasing[1:]):
            for source in self._peaks_by_group[current]:
                for sink in self._peaks_by_group[following]:
                    self._add_edge(transition_function(source, sink))

        logger.debug(f"Built transition graph: {len(observations)} observations, "
                     f"{len(groups)} voltage groups, {len(self.edges)} edges")

    def _add_edge(self, edge: IonTransition) -> None:
        self._out_edges[edge.source].append(edge)

    # ----- queries -----

    @property
    def vertices(self) -> List[ObservedPeak]:
        return list(self._vertices)

    @property
    def edges(self) -> List[IonTransition]:
        return [edge for edges in self._out_edges.values() for edge in edges]

    def out_edges(self, vertex: ObservedPeak) -> List[IonTransition]:
        if vertex not in self._out_edges:
            raise ValueError(f"Vertex {vertex!r} is not in the transition graph")
        return list(self._out_edges[vertex])

    def sorted_voltage_groups(self, increasing: bool = False) -> List[VoltageGroup]:
        """Voltage groups ordered by mean voltage (decreasing by default)."""
        return list(self._increasing if increasing else self._decreasing)

    def find_peaks_in_voltage_group(self, voltage_group: VoltageGroup) -> List[ObservedPeak]:
        if voltage_group not in self._peaks_by_group:
            raise ValueError("Voltage group not defined in observation transition graph")
        return list(self._peaks_by_group[voltage_group])

    # ----- path search -----

    def distances_to_sink(self) -> Dict[ObservedPeak, float]:
        """Shortest path weight from every vertex to the sink."""
        distances: Dict[ObservedPeak, float] = {self.sink: 0.0}

        for group in self._increasing:
            for peak in self._peaks_by_group[group]:
                distances[peak] = min(
                    (edge.weight + distances[edge.sink] for edge in self._out_edges[peak]),
                    default=math.inf,
                )

        distances[self.source] = min(
            (edge.weight + distances[edge.sink] for edge in self._out_edges[self.source]),
            default=math.inf,
        )
        return distances

    def k_shortest_paths(self, k: int) -> List[Path]:
        """
        Up to ``k`` source->sink paths in order of increasing total weight.

        Paths through impossible transitions (probability 0) are never
        returned.

        Parameters
        ----------
        k : int
            Maximum number of paths

        Returns
        -------
        paths : list of tuple of IonTransition
            Each path as its edge sequence from source to sink
        """
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")

        h = self.distances_to_sink()
        if math.isinf(h[self.source]):
            logger.info("No finite path from source to sink")
            return []

        counter = itertools.count()
        heap: List[Tuple[float, int, float, ObservedPeak, Path]] = [
            (h[self.source], next(counter), 0.0, self.source, ())
        ]
        paths: List[Path] = []

        while heap and len(paths) < k:
            _, _, g, vertex, path = heapq.heappop(heap)

            if vertex is self.sink:
                paths.append(path)
                continue

            for edge in self._out_edges[vertex]:
                w = edge.weight
                if math.isinf(w) or math.isinf(h[edge.sink]):
                    continue
                g_next = g + w
                heapq.heappush(
                    heap,
                    (g_next + h[edge.sink], next(counter), g_next, edge.sink, path + (edge,)),
                )

        logger.info(f"Found {len(paths)} candidate paths (k={k})")
        return paths

    @staticmethod
    def path_weight(path: Sequence[IonTransition]) -> float:
        return sum(edge.weight for edge in path)

    @staticmethod
    def path_probability(path: Sequence[IonTransition]) -> float:
        probability = 1.0
        for edge in path:
            probability *= edge.probability
        return probability
