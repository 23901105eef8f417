"""Tests for the observation transition graph and k-shortest-path search."""

import itertools
import math

import pytest

from imstracker.association import IonTransition, ObservationTransitionGraph, TransitionModel
from imstracker.domain import ObservedPeak


def brute_force_path_weights(graph):
    """Weights of every source->sink path, by exhaustive depth-first search."""
    weights = []

    def walk(vertex, weight):
        if vertex is graph.sink:
            weights.append(weight)
            return
        for edge in graph.out_edges(vertex):
            walk(edge.sink, weight + edge.weight)

    walk(graph.source, 0.0)
    return sorted(weights)


class TestGraphStructure:

    def test_edges(self, voltage_groups, make_observation):
        observations = [make_observation(g, 20.0 + i) for i, g in enumerate(voltage_groups) for _ in range(2)]
        graph = ObservationTransitionGraph(observations, TransitionModel())

        assert len(graph.vertices) == 6 + 2
        # source and sink edges, plus 2x2 between each adjacent pair
        assert len(graph.edges) == 6 + 6 + 4 + 4
        assert len(graph.out_edges(graph.source)) == 6
        assert graph.out_edges(graph.sink) == []

    def test_layer_order(self, voltage_groups, make_observation):
        observations = [make_observation(g, 20.0) for g in voltage_groups]
        graph = ObservationTransitionGraph(observations, TransitionModel())

        decreasing = graph.sorted_voltage_groups()
        increasing = graph.sorted_voltage_groups(increasing=True)
        assert [g.mean_voltage_in_volts for g in decreasing] == [1500.0, 1250.0, 1000.0]
        assert increasing == list(reversed(decreasing))

        # edges only go from higher to the next lower voltage
        for edge in graph.edges:
            if not edge.source.is_virtual and not edge.sink.is_virtual:
                assert decreasing.index(edge.sink.voltage_group) == decreasing.index(edge.source.voltage_group) + 1

    def test_find_peaks_in_voltage_group(self, voltage_groups, make_observation):
        a = make_observation(voltage_groups[0], 20.0)
        b = make_observation(voltage_groups[0], 22.0)
        c = make_observation(voltage_groups[1], 25.0)
        graph = ObservationTransitionGraph([a, b, c], TransitionModel())

        peaks = graph.find_peaks_in_voltage_group(voltage_groups[0])
        assert len(peaks) == 2
        assert peaks[0] is a and peaks[1] is b

    def test_unknown_voltage_group_raises(self, voltage_groups, make_observation):
        graph = ObservationTransitionGraph([make_observation(voltage_groups[0], 20.0)], TransitionModel())
        with pytest.raises(ValueError):
            graph.find_peaks_in_voltage_group(voltage_groups[2])

    def test_virtual_observation_rejected(self):
        with pytest.raises(ValueError):
            ObservationTransitionGraph([ObservedPeak.virtual()], TransitionModel())


class TestKShortestPaths:

    def test_best_path_follows_intensity(self, two_track_observations):
        observations, track_a, track_b = two_track_observations
        graph = ObservationTransitionGraph(observations, TransitionModel())

        paths = graph.k_shortest_paths(2)
        visited = [[edge.sink for edge in path if not edge.sink.is_virtual] for path in paths]
        assert len(paths) == 2
        assert all(len(v) == 3 for v in visited)
        for v in visited:
            assert all(p in track_a for p in v) or all(p in track_b for p in v)

    def test_ranked_weights_match_brute_force(self, voltage_groups, make_observation):
        intensities = [1.0e5, 3.0e5, 8.0e5]
        observations = [
            make_observation(group, 20.0, intensity=intensity)
            for group, intensity in itertools.product(voltage_groups, intensities)
        ]
        graph = ObservationTransitionGraph(observations, TransitionModel())
        expected = brute_force_path_weights(graph)

        paths = graph.k_shortest_paths(len(expected) + 10)

        assert len(paths) == len(expected)
        weights = [graph.path_weight(p) for p in paths]
        assert weights == pytest.approx(expected)
        assert weights == sorted(weights)

    def test_paths_are_source_to_sink(self, two_track_observations):
        observations, _, _ = two_track_observations
        graph = ObservationTransitionGraph(observations, TransitionModel())
        for path in graph.k_shortest_paths(10):
            assert path[0].source is graph.source
            assert path[-1].sink is graph.sink
            for first, second in zip(path, path[1:]):
                assert first.sink is second.source

    def test_impossible_edges_are_skipped(self, voltage_groups, make_observation):
        a = make_observation(voltage_groups[0], 20.0)
        b = make_observation(voltage_groups[1], 25.0)

        def transitions(source, sink):
            if source is a and sink is b:
                return IonTransition(source, sink, 0.0)
            return TransitionModel()(source, sink)

        graph = ObservationTransitionGraph([a, b], transitions)
        paths = graph.k_shortest_paths(10)

        # source-a-sink and source-b-sink only
        assert len(paths) == 2
        assert all(math.isfinite(graph.path_weight(p)) for p in paths)

    def test_distances_to_sink(self, single_track_observations):
        graph = ObservationTransitionGraph(single_track_observations, TransitionModel())
        h = graph.distances_to_sink()
        assert h[graph.sink] == 0.0
        assert h[graph.source] == pytest.approx(graph.path_weight(graph.k_shortest_paths(1)[0]))

    def test_invalid_k(self, single_track_observations):
        graph = ObservationTransitionGraph(single_track_observations, TransitionModel())
        with pytest.raises(ValueError):
            graph.k_shortest_paths(0)
