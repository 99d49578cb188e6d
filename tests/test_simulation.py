import math
from forum.client.simulation import ForceSimulation, SimNode


def distance(a, b):
    return math.hypot(a.x - b.x, a.y - b.y)


def run_until_settled(simulation, limit=2000):
    ticks = 0
    while simulation.step():
        ticks += 1
        assert ticks < limit
    return ticks


def test_links_with_missing_endpoints_are_dropped():
    simulation = ForceSimulation(
        [SimNode(id="a"), SimNode(id="b")],
        links=[("ab", "a", "b"), ("ax", "a", "x")],
    )
    assert [link.id for link in simulation.links] == ["ab"]


def test_link_strength_follows_degree():
    simulation = ForceSimulation(
        [SimNode(id="hub"), SimNode(id="a"), SimNode(id="b")],
        links=[("1", "hub", "a"), ("2", "hub", "b")],
    )
    link = simulation.links[0]
    assert link.strength == 1.0
    assert link.bias == 2 / 3


def test_cools_down_and_stops():
    simulation = ForceSimulation([SimNode(id="a", x=10), SimNode(id="b", x=-10)], seed=3)
    ticks = run_until_settled(simulation)
    assert simulation.settled
    assert not simulation.running
    assert 300 < ticks < 400
    assert not simulation.step()


def test_restart_resumes():
    simulation = ForceSimulation([SimNode(id="a")])
    run_until_settled(simulation)
    simulation.restart(0.3)
    assert simulation.alpha == 0.3
    assert simulation.step()


def test_fixed_nodes_do_not_move():
    anchor = SimNode(id="anchor", x=50, y=50)
    anchor.pin(50, 50)
    other = SimNode(id="other", x=60, y=50)
    simulation = ForceSimulation([anchor, other], links=[("l", "anchor", "other")], center=(400, 300))

    for _ in range(50):
        simulation.tick()

    assert (anchor.x, anchor.y) == (50, 50)
    assert anchor.vx == 0 and anchor.vy == 0


def test_coincident_nodes_separate():
    nodes = [SimNode(id=str(i), x=100, y=100) for i in range(3)]
    simulation = ForceSimulation(nodes, center=(100, 100), seed=7)
    run_until_settled(simulation)
    for i, a in enumerate(nodes):
        for b in nodes[i + 1:]:
            assert distance(a, b) > 100


def test_link_pulls_towards_distance_and_center():
    a = SimNode(id="a", x=0, y=0)
    b = SimNode(id="b", x=1000, y=0)
    simulation = ForceSimulation(
        [a, b],
        links=[("ab", "a", "b")],
        center=(500, 400),
        charge_strength=0,
        seed=1,
    )
    run_until_settled(simulation)
    assert abs(distance(a, b) - 200) < 25
    assert abs((a.x + b.x) / 2 - 500) < 1
    assert abs((a.y + b.y) / 2 - 400) < 1


def test_release_clears_pin():
    node = SimNode(id="a")
    node.pin(5, 6)
    assert node.fixed
    node.release()
    assert not node.fixed
