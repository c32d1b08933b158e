import pytest

from engine.topology.graph import DependencyGraph


def test_dependency_graph(graph):
    assert "Agg-SW1" in graph
    assert "Nowhere" not in graph
    assert graph.downstream("Agg-SW1") == {"Access-SW1", "Access-SW2"}
    assert graph.upstream("Agg-SW1") == {"Core-R1"}
    assert graph.neighbours("Agg-SW1") == {"Core-R1", "Access-SW1", "Access-SW2"}
    assert graph.all_devices()[0] == "Access-SW1"


@pytest.mark.parametrize("source,target,hops", [
    ("Agg-SW1", "Agg-SW1", 0),
    ("Agg-SW1", "Access-SW1", 1),
    ("Access-SW1", "Agg-SW1", 1),
    ("Core-R1", "Server-01", 3),
    ("Access-SW1", "Access-SW2", 2),
])
def test_hop_distance_is_undirected(graph, source, target, hops):
    assert graph.hop_distance(source, target, max_hops=3) == hops


def test_hop_distance_cutoff(graph):
    assert graph.hop_distance("Agg-SW2", "Server-01", max_hops=3) is None
    assert graph.hop_distance("Agg-SW2", "Server-01", max_hops=4) == 4
    assert graph.hop_distance("Agg-SW1", "Nowhere", max_hops=10) is None


def test_self_links_and_cycles_ignored():
    g = DependencyGraph()
    g.add_link("a", "a")
    g.add_link("a", "b")
    g.add_link("b", "c")
    g.add_link("c", "a")
    assert g.neighbours("a") == {"b", "c"}
    assert g.hop_distance("a", "c", max_hops=1) == 1


def test_load_topology(tmp_path):
    from engine.errors import ConfigError
    from engine.topology.graph import load_topology

    path = tmp_path / "topology.json"
    path.write_text('{"Core-R1": ["Agg-SW1"], "Agg-SW1": ["Access-SW1"]}')
    g = load_topology(str(path))
    assert g.hop_distance("Core-R1", "Access-SW1", max_hops=3) == 2

    path.write_text('["Core-R1"]')
    with pytest.raises(ConfigError):
        load_topology(str(path))


def test_load_topology_unreadable_is_config_error(tmp_path):
    from engine.errors import ConfigError
    from engine.topology.graph import load_topology

    with pytest.raises(ConfigError):
        load_topology(str(tmp_path / "missing.json"))

    broken = tmp_path / "broken.json"
    broken.write_text('{"Core-R1": [')
    with pytest.raises(ConfigError):
        load_topology(str(broken))
