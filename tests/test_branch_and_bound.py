import threading

import pytest

from tspopt import InvalidParameterError, NeighborLists
from tspopt.branch_and_bound import BranchAndBound, Incumbent, order_from_edges
from tspopt.budget import Budget
from tspopt.construction import nearest_neighbor

from conftest import brute_force, random_asymmetric, random_euclidean, random_symmetric


@pytest.mark.parametrize('n', [5, 6, 7, 8, 9])
def test_matches_brute_force_from_scratch(n):
    inst = random_symmetric(n, seed=n)
    outcome = BranchAndBound(inst).run()
    assert outcome.optimal
    assert outcome.tour.is_valid()
    assert outcome.cost == brute_force(inst)
    assert outcome.tour.total_cost(inst) == outcome.cost
    assert outcome.root_bound <= outcome.cost


@pytest.mark.parametrize('seed', range(3))
def test_matches_brute_force_with_incumbent(seed):
    inst = random_euclidean(9, seed)
    start = nearest_neighbor(inst, NeighborLists.full(inst))
    outcome = BranchAndBound(inst, node_iterations=20).run(start)
    assert outcome.optimal
    assert outcome.cost == brute_force(inst)
    assert outcome.cost <= start.total_cost(inst)


def test_non_integral_costs():
    inst = random_euclidean(8, seed=12, metric='EUCLIDEAN')
    outcome = BranchAndBound(inst).run()
    assert outcome.optimal
    assert outcome.cost == pytest.approx(brute_force(inst))


def test_node_budget_stops_search():
    inst = random_symmetric(12, seed=5)
    start = nearest_neighbor(inst)
    outcome = BranchAndBound(inst, node_budget=0).run(start)
    assert not outcome.optimal
    assert outcome.stats.nodes_explored == 0
    assert outcome.root_bound is None
    assert outcome.tour.same_cycle(start)


def test_cancelled_search_keeps_incumbent():
    inst = random_symmetric(10, seed=1)
    start = nearest_neighbor(inst)
    event = threading.Event()
    event.set()
    outcome = BranchAndBound(inst, budget=Budget(cancel_event=event)).run(start)
    assert not outcome.optimal
    assert outcome.cost == start.total_cost(inst)


def test_stats_are_counted():
    inst = random_symmetric(8, seed=3)
    outcome = BranchAndBound(inst).run()
    stats = outcome.stats
    assert stats.nodes_explored >= 1
    assert stats.one_trees >= stats.nodes_explored - stats.infeasible_nodes
    assert stats.nodes_pruned + stats.infeasible_nodes <= stats.nodes_explored


def test_rejects_asymmetric():
    with pytest.raises(InvalidParameterError):
        BranchAndBound(random_asymmetric(6, seed=0))


def test_incumbent_accepts_only_strict_improvements():
    inc = Incumbent()
    assert inc.offer([0, 1, 2], 10.0)
    assert not inc.offer([0, 2, 1], 10.0)
    assert not inc.offer([0, 2, 1], 9.95, epsilon=0.1)
    assert inc.offer([0, 2, 1], 9.0)
    order, cost = inc.snapshot()
    assert order == [0, 2, 1]
    assert cost == 9.0


def test_incumbent_concurrent_offers():
    inc = Incumbent()

    def worker(base):
        for k in range(200):
            inc.offer([0, 1, 2], float(base * 1000 + k))

    threads = [threading.Thread(target=worker, args=(b,)) for b in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert inc.cost == 0.0


def test_order_from_edges():
    edges = [(0, 2), (1, 2), (1, 3), (0, 3)]
    assert order_from_edges(4, edges) in ([0, 2, 1, 3], [0, 3, 1, 2])
