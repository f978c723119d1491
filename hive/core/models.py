from dataclasses import dataclass, field
from enum import Enum


class Importance(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class RecipientKind(str, Enum):
    TO = "to"
    CC = "cc"


class ReservationMode(str, Enum):
    EXCLUSIVE = "exclusive"
    SHARED = "shared"


class TaskStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    CLOSED = "closed"


class SessionState(str, Enum):
    STARTING = "starting"
    WORKING = "working"
    NEEDS_INPUT = "needs-input"
    COMPACTING = "compacting"
    COMPLETING = "completing"
    READY_FOR_REVIEW = "ready-for-review"
    COMPLETED = "completed"
    IDLE = "idle"


class TaskSource(str, Enum):
    EPIC = "epic"
    BACKLOG = "backlog"


@dataclass
class Project:
    id: int
    slug: str
    human_key: str
    created_at: str | None = None


@dataclass
class Agent:
    id: int
    project_id: int
    name: str
    program: str
    model: str
    task_description: str = ""
    inception_ts: str | None = None
    last_active_ts: str | None = None


@dataclass
class AgentSummary:
    agent: Agent
    project: str
    unread: int = 0
    pending_acks: int = 0
    reservations: int = 0


@dataclass
class FileReservation:
    id: int
    project_id: int
    agent_id: int
    path_pattern: str
    exclusive: bool = True
    reason: str = ""
    created_ts: str | None = None
    expires_ts: str | None = None
    released_ts: str | None = None
    agent_name: str | None = None

    @property
    def mode(self) -> ReservationMode:
        return ReservationMode.EXCLUSIVE if self.exclusive else ReservationMode.SHARED


@dataclass
class Recipient:
    agent_name: str
    kind: RecipientKind | str = RecipientKind.TO
    read_ts: str | None = None
    ack_ts: str | None = None


@dataclass
class Message:
    id: int
    project_id: int
    sender_id: int
    subject: str
    body: str
    thread_id: str | None = None
    importance: Importance | str = Importance.NORMAL
    ack_required: bool = False
    created_ts: str | None = None
    expires_ts: str | None = None
    sender_name: str | None = None
    recipients: list[Recipient] = field(default_factory=list)


@dataclass
class InboxItem:
    """A message as seen by one recipient, with that recipient's read/ack state."""

    message: Message
    kind: RecipientKind | str = RecipientKind.TO
    read_ts: str | None = None
    ack_ts: str | None = None


@dataclass
class PendingAck:
    agent_name: str
    message: Message


@dataclass
class ThreadSummary:
    thread_id: str
    message_count: int
    first_ts: str
    last_ts: str
    participants: list[str] = field(default_factory=list)


@dataclass
class Dependency:
    id: str
    status: TaskStatus | str = TaskStatus.OPEN


@dataclass
class Task:
    id: str
    title: str = ""
    status: TaskStatus | str = TaskStatus.OPEN
    priority: int = 2
    issue_type: str = "task"
    assignee: str | None = None
    parent: str | None = None
    project: str | None = None
    depends_on: list[Dependency] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    closed_at: str | None = None

    def __post_init__(self):
        if not isinstance(self.status, TaskStatus):
            self.status = TaskStatus(self.status)
        if self.project is None and "-" in self.id:
            self.project = self.id.split("-", 1)[0]

    @property
    def blocked(self) -> bool:
        """Blocked while any dependency is not closed."""
        return any(
            getattr(dep.status, "value", dep.status) != TaskStatus.CLOSED.value
            for dep in self.depends_on
        )

    @property
    def ready(self) -> bool:
        return self.status == TaskStatus.OPEN and not self.blocked


@dataclass
class NextTask:
    task_id: str
    title: str
    priority: int
    source: TaskSource
    epic_id: str | None = None
    epic_title: str | None = None


@dataclass
class SessionSnapshot:
    agent_name: str
    session: str
    state: SessionState
    task: Task | None = None
    last_closed: Task | None = None
    output_chars: int = 0
