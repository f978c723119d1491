import threading

import pytest

from hive.core import registry, reservations
from hive.errors import ConflictError, InvalidInputError, NotFoundError
from hive.lib import store


def test_overlapping_exclusive_conflicts_naming_holder(agents):
    reservations.reserve("Alpha", ["src/**"])

    with pytest.raises(ConflictError) as exc:
        reservations.reserve("Bravo", ["src/auth/**"])

    conflicts = exc.value.conflicts
    assert len(conflicts) == 1
    assert conflicts[0].held_by == "Alpha"
    assert conflicts[0].held_pattern == "src/**"
    assert conflicts[0].pattern == "src/auth/**"

    granted = reservations.reserve("Bravo", ["tests/auth/**"])
    assert [r.path_pattern for r in granted] == ["tests/auth/**"]


def test_all_or_nothing(agents):
    reservations.reserve("Alpha", ["src/auth/**"])

    with pytest.raises(ConflictError):
        reservations.reserve("Bravo", ["docs/**", "src/auth/login.py"])

    assert reservations.list_active(agent="Bravo") == []


def test_conflict_lists_every_blocker(agents):
    reservations.reserve("Alpha", ["src/auth/**"])
    reservations.reserve("Charlie", ["src/billing/**"])

    with pytest.raises(ConflictError) as exc:
        reservations.reserve("Bravo", ["src/**"])

    assert sorted(c.held_by for c in exc.value.conflicts) == ["Alpha", "Charlie"]
    assert "Alpha, Charlie" in str(exc.value)


def test_shared_reservations_coexist(agents):
    reservations.reserve("Alpha", ["docs/**"], exclusive=False)
    reservations.reserve("Bravo", ["docs/**"], exclusive=False)
    reservations.reserve("Charlie", ["docs/guide.md"], exclusive=False)

    with pytest.raises(ConflictError) as exc:
        reservations.reserve("Charlie", ["docs/api.md"])

    assert sorted(c.held_by for c in exc.value.conflicts) == ["Alpha", "Bravo"]
    assert len(reservations.list_active()) == 3


def test_own_overlapping_exclusive_hold_is_rejected(agents):
    reservations.reserve("Alpha", ["src/**"])

    with pytest.raises(ConflictError) as exc:
        reservations.reserve("Alpha", ["src/auth/**"])

    assert [(c.held_by, c.held_pattern) for c in exc.value.conflicts] == [("Alpha", "src/**")]
    assert [r.path_pattern for r in reservations.list_active()] == ["src/**"]


def test_rereserving_same_pattern_refreshes_one_row(agents, frozen_clock):
    first = reservations.reserve("Alpha", ["src/**"], ttl_seconds=600)[0]
    frozen_clock.advance(300)

    again = reservations.reserve("Alpha", ["src/**"], ttl_seconds=600, reason="still on it")[0]

    assert again.id == first.id
    assert again.expires_ts > first.expires_ts
    assert again.reason == "still on it"
    active = reservations.list_active()
    assert len(active) == 1
    assert active[0].expires_ts == again.expires_ts


def test_rereserving_never_shortens_expiry(agents):
    first = reservations.reserve("Alpha", ["src/**"], ttl_seconds=3600)[0]
    again = reservations.reserve("Alpha", ["src/**"], ttl_seconds=60)[0]
    assert again.expires_ts == first.expires_ts


def test_at_most_one_overlapping_exclusive_hold(agents):
    reservations.reserve("Alpha", ["src/**"])
    with pytest.raises(ConflictError):
        reservations.reserve("Alpha", ["src/auth/**"])
    reservations.reserve("Alpha", ["src/**"])

    active = [r for r in reservations.list_active() if r.exclusive]
    assert len(active) == 1


def test_overlapping_exclusive_patterns_in_one_request(agents):
    with pytest.raises(InvalidInputError, match="overlap"):
        reservations.reserve("Alpha", ["src/**", "src/auth/**"])
    assert reservations.list_active() == []

    granted = reservations.reserve("Alpha", ["src/**", "src/auth/**"], exclusive=False)
    assert len(granted) == 2


def test_shared_hold_upgrades_in_place(agents):
    shared = reservations.reserve("Alpha", ["docs/**"], exclusive=False)[0]

    upgraded = reservations.reserve("Alpha", ["docs/**"])[0]

    assert upgraded.id == shared.id
    assert upgraded.exclusive
    assert len(reservations.list_active()) == 1
    with pytest.raises(ConflictError):
        reservations.reserve("Bravo", ["docs/**"], exclusive=False)


def test_duplicates_collapsed(agents):
    granted = reservations.reserve("Alpha", ["src/a.py", "./src/a.py", "src/a.py"])
    assert [r.path_pattern for r in granted] == ["src/a.py"]


def test_validation(agents):
    with pytest.raises(InvalidInputError):
        reservations.reserve("Alpha", [])
    with pytest.raises(InvalidInputError):
        reservations.reserve("Alpha", ["src/**"], ttl_seconds=30)
    with pytest.raises(InvalidInputError):
        reservations.reserve("Alpha", ["../outside"])
    with pytest.raises(NotFoundError):
        reservations.reserve("Ghost", ["src/**"])


def test_expired_reservations_drop_out(agents, frozen_clock):
    reservations.reserve("Alpha", ["src/**"], ttl_seconds=60)
    assert len(reservations.list_active()) == 1

    frozen_clock.advance(61)

    assert reservations.list_active() == []
    granted = reservations.reserve("Bravo", ["src/auth/**"])
    assert granted[0].agent_name == "Bravo"


def test_release_is_idempotent(agents):
    reservations.reserve("Alpha", ["src/**", "docs/**"])

    assert reservations.release("Alpha", ["src/**"]) == 1
    assert reservations.release("Alpha", ["src/**"]) == 0
    assert reservations.release("Alpha", all=True) == 1
    assert reservations.release("Alpha", all=True) == 0
    assert reservations.list_active() == []

    reservations.reserve("Bravo", ["src/**"])


def test_release_requires_patterns_or_all(agents):
    with pytest.raises(InvalidInputError):
        reservations.release("Alpha")


def test_release_only_touches_own(agents):
    reservations.reserve("Alpha", ["src/**"])
    assert reservations.release("Bravo", ["src/**"]) == 0
    assert len(reservations.list_active(agent="Alpha")) == 1


def test_renew_extends_from_later_of_expiry_and_now(agents, frozen_clock):
    granted = reservations.reserve("Alpha", ["src/**"], ttl_seconds=600)
    original = granted[0].expires_ts

    renewed = reservations.renew("Alpha", 600)

    assert len(renewed) == 1
    assert renewed[0].expires_ts > original
    frozen_clock.advance(1000)
    assert len(reservations.list_active()) == 1


def test_renew_only_named_patterns(agents):
    reservations.reserve("Alpha", ["src/**", "docs/**"])
    renewed = reservations.renew("Alpha", 600, patterns=["docs/**"])
    assert [r.path_pattern for r in renewed] == ["docs/**"]


def test_check_reports_exclusive_blockers(agents):
    reservations.reserve("Alpha", ["src/auth/**"])
    reservations.reserve("Bravo", ["docs/**"], exclusive=False)

    blockers = reservations.check(["src/auth/login.py", "docs/a.md", "README.md"])

    assert [(c.pattern, c.held_by) for c in blockers] == [("src/auth/login.py", "Alpha")]
    assert reservations.check(["src/auth/login.py"], exclude_agent="Alpha") == []


def test_list_active_newest_first_with_holder(agents, frozen_clock):
    reservations.reserve("Alpha", ["a/**"])
    frozen_clock.advance(5)
    reservations.reserve("Bravo", ["b/**"])

    active = reservations.list_active()

    assert [(r.path_pattern, r.agent_name) for r in active] == [
        ("b/**", "Bravo"),
        ("a/**", "Alpha"),
    ]
    assert all(r.exclusive for r in active)


def test_reservations_are_scoped_to_project(agents):
    registry.register(name="Alpha", program="p", model="m", project="/work/other")
    reservations.reserve("Alpha", ["src/**"], project="/work/other")

    reservations.reserve("Bravo", ["src/**"])


def test_concurrent_reserves_have_one_winner(agents):
    contenders = ["Alpha", "Bravo", "Charlie"]
    barrier = threading.Barrier(len(contenders))
    results = {}

    def attempt(name):
        barrier.wait()
        try:
            reservations.reserve(name, ["src/core/**"])
            results[name] = "granted"
        except ConflictError as e:
            results[name] = e
        finally:
            store.close_all()

    threads = [threading.Thread(target=attempt, args=(n,)) for n in contenders]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    winners = [n for n, r in results.items() if r == "granted"]
    assert len(winners) == 1
    losers = [r for r in results.values() if isinstance(r, ConflictError)]
    assert len(losers) == 2
    assert all(e.conflicts[0].held_by == winners[0] for e in losers)
    assert len(reservations.list_active()) == 1


def test_list_active_spans_projects_when_unscoped(agents):
    registry.register(name="Delta", program="p", model="m", project="/work/other")
    reservations.reserve("Delta", ["lib/**"], project="/work/other")
    reservations.reserve("Alpha", ["src/**"])

    assert sorted(r.agent_name for r in reservations.list_active()) == ["Alpha", "Delta"]
    assert [r.agent_name for r in reservations.list_active(project="/work/demo")] == ["Alpha"]
    assert [r.agent_name for r in reservations.list_active(project="/work/other")] == ["Delta"]
    assert reservations.list_active(project="/work/unknown") == []


def test_check_stays_in_current_project(agents):
    registry.register(name="Delta", program="p", model="m", project="/work/other")
    reservations.reserve("Delta", ["src/**"], project="/work/other")

    assert reservations.check(["src/a.py"]) == []
    assert [c.held_by for c in reservations.check(["src/a.py"], project="/work/other")] == [
        "Delta"
    ]
