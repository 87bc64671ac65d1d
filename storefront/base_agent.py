# storefront/base_agent.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

Status = Literal["success", "failed"]

@dataclass
class Task:
    task_id: str
    agent: str
    type: str
    request_id: str
    user_id: Optional[Union[int, str]]
    payload: Dict[str, Any]
    credential: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

@dataclass
class ErrorDetail:
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

@dataclass
class NextAction:
    type: str  # e.g. "NAVIGATE", "LOGIN"
    message: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

@dataclass
class TaskResult:
    task_id: str
    agent: str
    status: Status
    payload: Dict[str, Any] = field(default_factory=dict)
    errors: List[ErrorDetail] = field(default_factory=list)
    next_actions: List[NextAction] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "success"

class BaseAgent(ABC):
    name: str

    @abstractmethod
    async def handle(self, task: Task) -> TaskResult:
        ...

    def unsupported(self, task: Task) -> TaskResult:
        return TaskResult(
            task_id=task.task_id,
            agent=self.name,
            status="failed",
            errors=[ErrorDetail(code="UNSUPPORTED_TASK", message=f"Unsupported task type: {task.type}", details={})]
        )

    def failed(self, task: Task, code: str, message: str, details: Optional[Dict[str, Any]] = None,
               next_actions: Optional[List[NextAction]] = None) -> TaskResult:
        return TaskResult(task_id=task.task_id, agent=self.name, status="failed",
                          errors=[ErrorDetail(code=code, message=message, details=details or {})],
                          next_actions=next_actions or [])

    def succeeded(self, task: Task, payload: Dict[str, Any]) -> TaskResult:
        return TaskResult(task_id=task.task_id, agent=self.name, status="success", payload=payload)
