# src/gobii_tasks/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable

from ..api.errors import GobiiApiError, friendly_api_error_message
from ..core.state import AppState
from ..credentials import ApiKeyStore
from ..tasks.output_schema import SchemaError, sample_schema, schema_from_json, schema_to_json
from ..tasks.task_api import create_task, delete_task, edit_task, format_task_line, resolve_task
from ..tasks.task_models import TaskStatus
from ..tasks.task_store import TaskNotFoundError

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[
    [AppState, list[str], CommandEmitter | None], str | Awaitable[str]
]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /run, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be plain functions or coroutines.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            reply = handler(state, args, emit)
            if inspect.isawaitable(reply):
                reply = await reply
        except TaskNotFoundError as e:
            return f"No such task: {e.task_id or '?'}. Use /list to see tasks."
        except GobiiApiError as e:
            logger.info("/%s failed: %s", name, e)
            return f"[API] {friendly_api_error_message(e)}"
        return reply

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  /exit - Quit.")
        return "\n".join(lines)


registry = CommandRegistry()


def _usage(text: str) -> str:
    return f"Usage: {text}"


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_list(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    tasks = state.task_store.load_tasks()
    if not tasks:
        return "No tasks yet. Create one with /new <name> | <prompt>."
    lines = ["Tasks:"]
    for i, task in enumerate(tasks, start=1):
        mark = " *" if task.id in state.runner.registry else ""
        lines.append(f"  {format_task_line(task, i)}{mark}")
    return "\n".join(lines)


def cmd_new(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /new <name> | <prompt>
    /new <name>
    """
    raw = " ".join(args)
    name, sep, prompt = raw.partition("|")
    name = name.strip() or "New Task"
    task = create_task(state.task_store, name=name, prompt=prompt.strip() if sep else "")
    return f"Created: {format_task_line(task)}"


def cmd_show(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return _usage("/show <task>")
    task = resolve_task(state.task_store, args[0])
    status = task.status.value if task.status is not None else "not run"
    schema = schema_to_json(task.output_schema) or "(none, plain text result)"
    lines = [
        f"Task {task.name or '(unnamed)'}",
        f"  id: {task.id}",
        f"  status: {status}",
        f"  prompt: {task.prompt or '(empty)'}",
        f"  output schema: {schema}",
    ]
    if task.last_result is not None:
        lines.append(f"  last result: {task.last_result}")
    return "\n".join(lines)


def cmd_name(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) < 2:
        return _usage("/name <task> <new name>")
    task = resolve_task(state.task_store, args[0])
    task = edit_task(state.task_store, task.id, name=" ".join(args[1:]))
    return f"Renamed: {format_task_line(task)}"


def cmd_prompt(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) < 2:
        return _usage("/prompt <task> <prompt text>")
    task = resolve_task(state.task_store, args[0])
    edit_task(state.task_store, task.id, prompt=" ".join(args[1:]))
    return "Prompt updated."


def cmd_schema(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /schema <task> none    -> plain text result
    /schema <task> sample  -> {"name": string, "value": number}
    /schema <task> <json>  -> e.g. {"type":"array","items":{"type":"string"}}
    """
    if len(args) < 2:
        return _usage("/schema <task> none | sample | <json>")
    task = resolve_task(state.task_store, args[0])

    raw = " ".join(args[1:]).strip()
    if raw.lower() == "none":
        schema = None
    elif raw.lower() == "sample":
        schema = sample_schema()
    else:
        try:
            schema = schema_from_json(raw)
        except SchemaError as e:
            return f"Invalid schema: {e}"

    edit_task(state.task_store, task.id, output_schema=schema)
    return f"Output schema set: {schema_to_json(schema) or 'none'}"


async def cmd_run(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return _usage("/run <task>")
    task = resolve_task(state.task_store, args[0])
    if task.id in state.runner.registry:
        return f"Task {task.name or task.id} is already running."

    if emit:
        emit(f"Submitting {task.name or task.id}...")
    record = await state.runner.run_task(task.id)
    return f"Task run successful:\n  Name: {record.name}\n  ID: {record.id}"


def cmd_resume(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if args:
        task = resolve_task(state.task_store, args[0])
        if not state.runner.has_credentials():
            return "API key is not set. Use /key <value> first."
        if task.id in state.runner.registry:
            return f"Task {task.name or task.id} is already being polled."
        started = state.runner.check_task(task.id)
        if started is None:
            status = task.status.value if task.status is not None else "not run"
            return f"Nothing to resume ({status})."
        return f"Checking status of {task.name or task.id}..."

    if not state.runner.has_credentials():
        return "API key is not set. Use /key <value> first."
    n = state.runner.check_all_tasks()
    return f"Resumed {n} task(s)."


async def cmd_fetch(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """One-shot remote lookup by server id; the stored task (if any) is not modified."""
    if not args:
        return _usage("/fetch <remote task id>")
    ref = await state.client.fetch_status(args[0])
    status = TaskStatus.from_wire(ref.status)
    if status == TaskStatus.COMPLETED:
        return f"Status: {status.value}\nResult: {ref.result or ''}"
    if status.is_terminal:
        return f"Status: {status.value}. Please check the task details for more information."
    return f"Status: {status.value}\nThe task is not completed yet."


def cmd_active(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    ids = sorted(state.runner.registry.active_ids())
    if not ids:
        return "No pollers running."
    return "Polling:\n" + "\n".join(f"  {task_id}" for task_id in ids)


def cmd_delete(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return _usage("/delete <task>")
    task = resolve_task(state.task_store, args[0])
    delete_task(state.task_store, task.id)
    return f"Deleted: {task.name or task.id}"


def cmd_key(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /key          -> show whether a key is configured
    /key <value>  -> save key
    /key clear    -> remove saved key
    """
    creds = state.credentials
    if not isinstance(creds, ApiKeyStore):
        return "Offline mode: no API key is used."

    if not args:
        key = creds.get()
        if not key:
            return "API key is not set. Use /key <value>."
        source = "GOBII_API_KEY" if creds.from_env else str(creds.path)
        return f"API key: ...{key[-4:]} (from {source})"

    if args[0].lower() == "clear":
        creds.clear()
        if creds.from_env:
            return "Saved key removed (GOBII_API_KEY is still set in the environment)."
        return "API key removed."

    creds.set(args[0])
    n = state.runner.check_all_tasks()
    return f"API key saved. Resumed {n} task(s)."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="List tasks (* = being polled).", aliases=["ls"])
registry.register("new", cmd_new, help_text="Create a task: /new <name> | <prompt>.")
registry.register("show", cmd_show, help_text="Show task details: /show <task>.")
registry.register("name", cmd_name, help_text="Rename a task: /name <task> <name>.")
registry.register("prompt", cmd_prompt, help_text="Set the prompt: /prompt <task> <text>.")
registry.register("schema", cmd_schema, help_text="Set output schema: /schema <task> none|sample|<json>.")
registry.register("run", cmd_run, help_text="Submit a task and poll until it finishes: /run <task>.")
registry.register("resume", cmd_resume, help_text="Resume polling: /resume [task].")
registry.register("fetch", cmd_fetch, help_text="Look up a remote task status once: /fetch <id>.")
registry.register("active", cmd_active, help_text="Show running pollers.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <task>.", aliases=["rm"])
registry.register("key", cmd_key, help_text="API key: /key | /key <value> | /key clear.")
