# storefront/auth_agent.py
from .backend import BackendClient, BackendError, BackendUnavailable, describe_failure
from .base_agent import BaseAgent, Task, TaskResult
from .schemas import AuthResponse


class AuthAgent(BaseAgent):
    name = "auth"

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def handle(self, task: Task) -> TaskResult:
        t = task.type
        if t == "AUTH_LOGIN":
            return await self._login(task)
        if t == "AUTH_REGISTER":
            return await self._register(task)
        return self.unsupported(task)

    async def _login(self, task: Task) -> TaskResult:
        username = task.payload.get("username")
        password = task.payload.get("password")
        if not username or not password:
            return self.failed(task, "MISSING_FIELDS", "username & password required")
        try:
            auth = await self.backend.fetch(
                AuthResponse, "POST", "/api/auth/local", json={"identifier": username, "password": password},
            )
        except (BackendError, BackendUnavailable) as e:
            message, details = describe_failure(e, "Authentication failed")
            return self.failed(task, "UNAUTHENTICATED", message, details)
        return self.succeeded(task, {"identity": auth.to_identity(), "user": auth.user})

    async def _register(self, task: Task) -> TaskResult:
        username = task.payload.get("username")
        password = task.payload.get("password")
        if not username or not password:
            return self.failed(task, "MISSING_FIELDS", "username & password required")
        # the backend requires an email; derive one when the caller has none
        email = task.payload.get("email") or f"{username}@example.com"
        try:
            auth = await self.backend.fetch(
                AuthResponse, "POST", "/api/auth/local/register",
                json={"username": username, "email": email, "password": password},
            )
        except (BackendError, BackendUnavailable) as e:
            message, details = describe_failure(e, "Registration failed")
            return self.failed(task, "BACKEND_ERROR", message, details)
        return self.succeeded(task, {"identity": auth.to_identity(), "user": auth.user})
