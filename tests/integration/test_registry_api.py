import pytest

from hive.core import registry, reservations
from hive.core.mail import api as mail
from hive.errors import InvalidInputError, NotFoundError


def test_register_creates_project_and_agent(test_store):
    agent = registry.register(name="BlueLake", program="claude-code", model="opus")

    assert agent.id is not None
    assert agent.inception_ts == agent.last_active_ts
    project = registry.get_project()
    assert project.human_key == "/work/demo"
    assert project.slug == "demo"


def test_register_is_idempotent_upsert(test_store):
    first = registry.register(name="BlueLake", program="claude-code", model="opus")
    second = registry.register(
        name="BlueLake", program="codex", model="gpt", task_description="auth"
    )

    assert second.id == first.id
    assert second.program == "codex"
    assert second.task_description == "auth"
    assert second.inception_ts == first.inception_ts
    assert len(registry.list_agents()) == 1


def test_register_generates_unique_names(test_store):
    generated = {registry.register(program="p", model="m").name for _ in range(5)}
    assert len(generated) == 5


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"program": "", "model": "m"}, "program"),
        ({"program": "p", "model": "  "}, "model"),
        ({"name": "has space", "program": "p", "model": "m"}, "whitespace"),
    ],
)
def test_register_validation(test_store, kwargs, message):
    with pytest.raises(InvalidInputError, match=message):
        registry.register(**kwargs)


def test_same_name_in_two_projects(test_store):
    a = registry.register(name="BlueLake", program="p", model="m", project="/work/one")
    b = registry.register(name="BlueLake", program="p", model="m", project="/work/two")
    assert a.id != b.id
    assert a.project_id != b.project_id


def test_slug_collision_gets_suffix(test_store):
    first = registry.ensure_project("/a/demo")
    second = registry.ensure_project("/b/demo")
    assert first.slug == "demo"
    assert second.slug == "demo-2"
    assert registry.ensure_project("/a/demo").id == first.id


def test_lookup_unknown_agent(test_store):
    registry.ensure_project()
    with pytest.raises(NotFoundError):
        registry.lookup("Nobody")
    assert registry.get_agent("Nobody") is None


def test_list_agents_active_within(test_store, frozen_clock):
    registry.register(name="Old", program="p", model="m")
    frozen_clock.advance(3600)
    registry.register(name="Fresh", program="p", model="m")

    assert [a.name for a in registry.list_agents()] == ["Fresh", "Old"]
    assert [a.name for a in registry.list_agents(active_within=600)] == ["Fresh"]


def test_actions_touch_last_active(test_store, frozen_clock):
    agent = registry.register(name="Worker", program="p", model="m")
    frozen_clock.advance(120)
    reservations.reserve("Worker", ["src/**"])

    refreshed = registry.lookup("Worker")
    assert refreshed.last_active_ts > agent.last_active_ts


def test_whoami_counts(agents):
    reservations.reserve("Alpha", ["src/**", "docs/**"])
    mail.send("Bravo", "Alpha", "hi", "body", ack_required=True)
    mail.send("Charlie", "Alpha", "fyi", "body")

    summary = registry.whoami("Alpha")

    assert summary.agent.name == "Alpha"
    assert summary.project == "/work/demo"
    assert summary.unread == 2
    assert summary.pending_acks == 1
    assert summary.reservations == 2


def test_list_agents_spans_projects_when_unscoped(test_store):
    registry.register(name="BlueLake", program="p", model="m")
    registry.register(name="RedStone", program="p", model="m", project="/work/other")

    assert {a.name for a in registry.list_agents()} == {"BlueLake", "RedStone"}
    assert [a.name for a in registry.list_agents(project="/work/demo")] == ["BlueLake"]
    assert registry.list_agents(project="/work/unknown") == []
