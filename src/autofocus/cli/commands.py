# src/autofocus/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import cast

from ..core.state import AppState
from ..storage.backup import export_to_file, import_from_file
from ..tasks.errors import NotebookError, ValidationError
from ..tasks.task_models import Task, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_MARKS = {
    TaskStatus.ACTIVE: "[ ]",
    TaskStatus.COMPLETED: "[x]",
    TaskStatus.DISMISSED: "[-]",
}


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, /next, ...)."""

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

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Notebook errors come back as a user-facing reply; state is unchanged.
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
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except NotebookError as e:
            logger.debug("/%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _page_number(raw: str) -> int:
    """Parse a 1-based page number as shown to the user into a page index."""
    try:
        n = int(raw)
    except ValueError:
        raise ValidationError(f"not a page number: {raw}") from None
    if n < 1:
        raise ValidationError("page numbers start at 1")
    return n - 1


def _int_arg(raw: str, what: str) -> int:
    try:
        n = int(raw)
    except ValueError:
        raise ValidationError(f"{what} must be a number") from None
    return n


def _task_at(state: AppState, raw: str) -> Task:
    """Resolve a 1-based position on the current page."""
    page = state.notebook.current_page_index
    tasks = state.notebook.tasks_on_page(page)
    try:
        pos = int(raw.lstrip("#"))
    except ValueError:
        raise ValidationError(f"not a task number: {raw}") from None
    if pos < 1 or pos > len(tasks):
        raise ValidationError(f"no task #{pos} on page {page + 1}")
    return tasks[pos - 1]


def render_page(state: AppState, page_index: int | None = None) -> str:
    nb = state.notebook
    idx = nb.current_page_index if page_index is None else page_index
    view = nb.page_view(idx)

    flags = []
    if view.full:
        flags.append("full")
    if view.closed:
        flags.append("closed")
    flag_str = f", {', '.join(flags)}" if flags else ""

    lines = [f"Page {idx + 1} of {nb.max_page_index + 1} ({view.item_count}/{view.capacity}{flag_str})"]
    tasks = nb.tasks_on_page(idx)
    if not tasks:
        lines.append("  (empty)")
    for i, t in enumerate(tasks, start=1):
        note = f"  -- {t.details}" if t.details else ""
        lines.append(f"  {i}. {_MARKS[t.status]} {t.text}{note}")
    return "\n".join(lines)


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    nb = state.notebook
    s = nb.settings
    tasks = nb.tasks
    active = sum(1 for t in tasks if t.is_active)
    return (
        "Status:\n"
        f"  Page: {nb.current_page_index + 1} of {nb.max_page_index + 1}\n"
        f"  Tasks: {len(tasks)} ({active} active)\n"
        f"  Page size: {s.page_size}  Font size: {s.font_size}\n"
        f"  Closed pages: {', '.join(str(p + 1) for p in s.closed_pages) or '-'}\n"
        f"  Unsaved changes: {len(state.changes)}"
    )


def cmd_show(state: AppState, args: list[str]) -> str:
    return render_page(state, _page_number(args[0]) if args else None)


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add text            -> add a task
    /add text | details  -> add a task with details
    """
    raw = " ".join(args)
    text, sep, details = raw.partition("|")
    task = state.notebook.add_task(text, (details.strip() or None) if sep else None)
    return f"Added to page {task.page_index + 1}: {task.text}"


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <n>"
    task = _task_at(state, args[0])
    if not task.is_active:
        return f"Already {task.status.value}: {task.text}"
    state.notebook.complete_task(task.id)
    return f"Done: {task.text}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /edit <n> <new text>"
    task = _task_at(state, args[0])
    updated = state.notebook.update_task(task.id, text=" ".join(args[1:]))
    return f"Updated: {updated.text}"


def cmd_note(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /note <n> [details]  (no details clears them)"
    task = _task_at(state, args[0])
    details = " ".join(args[1:]).strip() or None
    state.notebook.update_task(task.id, details=details)
    return f"Details {'set' if details else 'cleared'} for: {task.text}"


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <n>"
    task = _task_at(state, args[0])
    state.notebook.delete_task(task.id)
    return f"Deleted: {task.text}"


def cmd_fire(state: AppState, args: list[str]) -> str:
    page = _page_number(args[0]) if args else state.notebook.current_page_index
    fired = state.notebook.dismiss_page_tasks(page)
    if not fired:
        return f"Nothing to dismiss on page {page + 1}."
    return f"Page {page + 1} fired: {len(fired)} task(s) dismissed."


def cmd_next(state: AppState, args: list[str]) -> str:
    move = state.notebook.advance_page()
    lines = []
    if move.dismissed:
        lines.append(
            f"Left page {move.from_page + 1} untouched: {len(move.dismissed)} task(s) dismissed."
        )
    lines.append(render_page(state))
    return "\n".join(lines)


def cmd_prev(state: AppState, args: list[str]) -> str:
    current = state.notebook.current_page_index
    if current == 0:
        return "Already on the first page."
    state.notebook.go_to_page(current - 1)
    return render_page(state)


def cmd_page(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /page <n>"
    state.notebook.go_to_page(_page_number(args[0]))
    return render_page(state)


def cmd_first(state: AppState, args: list[str]) -> str:
    state.notebook.go_to_page(state.notebook.first_active_page_index)
    return render_page(state)


def cmd_last(state: AppState, args: list[str]) -> str:
    state.notebook.go_to_page(state.notebook.last_active_page_index)
    return render_page(state)


def cmd_pages(state: AppState, args: list[str]) -> str:
    nb = state.notebook
    if not nb.tasks:
        return "No pages yet."
    lines = ["Pages:"]
    for idx in range(nb.max_page_index + 1):
        v = nb.page_view(idx)
        marker = ">" if idx == nb.current_page_index else " "
        extra = " closed" if v.closed else (" full" if v.full else "")
        lines.append(
            f"{marker} {idx + 1}: {v.item_count}/{v.capacity} items, {v.active_count} active{extra}"
        )
    return "\n".join(lines)


def cmd_suggest(state: AppState, args: list[str]) -> str:
    text = " ".join(args)
    found = state.notebook.get_suggestions(text)
    lines = [f"  {s}" for s in found] or ["  (no suggestions)"]
    if state.notebook.check_dismissed_warning(text):
        lines.append("Warning: you dismissed this exact task before.")
    return "\n".join(["Suggestions:", *lines])


def _month_arg(raw: str) -> tuple[int, int]:
    """Parse YYYY-MM."""
    year, sep, month = raw.partition("-")
    if not sep or not year.isdigit() or not month.isdigit():
        raise ValidationError(f"expected YYYY-MM, got {raw}")
    return int(year), int(month)


def cmd_log(state: AppState, args: list[str]) -> str:
    """
    /log           -> finished tasks of the current month
    /log YYYY-MM   -> finished tasks of that month
    """
    if args:
        year, month = _month_arg(args[0])
    else:
        today = datetime.now().astimezone()
        year, month = today.year, today.month

    entries = state.notebook.history(year, month)
    lines = [f"Log {year:04d}-{month:02d}:"]
    if not entries:
        lines.append("  No entries for this month.")
    for e in entries:
        badge = " (dismissed)" if e.dismissed else ""
        lines.append(f"  {e.at:%d %a} / {e.at:%H:%M}  {e.task.text}{badge}")
        if e.task.details:
            lines.append(f"      {e.task.details}")
    return "\n".join(lines)


def cmd_size(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Page size is {state.notebook.settings.page_size}. Use /size <n>."
    settings = state.notebook.set_page_size(_int_arg(args[0], "page size"))
    last = state.notebook.max_page_index
    if last in settings.closed_pages:
        return f"Page size set to {settings.page_size}. Page {last + 1} is over the new size and is now closed."
    return f"Page size set to {settings.page_size}."


def cmd_font(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Font size is {state.notebook.settings.font_size}. Use /font <n>."
    state.notebook.set_font_size(_int_arg(args[0], "font size"))
    return f"Font size set to {state.notebook.settings.font_size}."


def cmd_export(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    target = Path(" ".join(args)) if args else Path(state.settings.backup_dir)
    try:
        path = export_to_file(state.notebook, target)
    except OSError as e:
        logger.exception("Export failed target=%s", target)
        return f"Export failed: {e}"
    return f"Exported to {path}"


def cmd_import(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /import <file.json>"
    source = " ".join(args)
    if emit:
        emit(f"Importing {source}...")
    count = import_from_file(state.notebook, source)
    return f"Imported {count} task(s)."


def cmd_reset(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() != "yes":
        return "This deletes every task and setting. Type /reset yes to confirm."
    state.notebook.reset_all()
    return "Notebook reset."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show notebook summary.")
registry.register("show", cmd_show, help_text="Show the current page (or /show <page>).", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task even if dismissed before: /add text [| details].")
registry.register("done", cmd_done, help_text="Complete a task on this page: /done <n>.")
registry.register("edit", cmd_edit, help_text="Change a task's text: /edit <n> <text>.")
registry.register("note", cmd_note, help_text="Set or clear details: /note <n> [details].")
registry.register("del", cmd_delete, help_text="Delete a task for good: /del <n>.", aliases=["rm"])
registry.register("fire", cmd_fire, help_text="Dismiss all active tasks on a page: /fire [page].")
registry.register("next", cmd_next, help_text="Advance (untouched pages get dismissed).", aliases=["n"])
registry.register("prev", cmd_prev, help_text="Go back one page (no dismissal).", aliases=["p"])
registry.register("page", cmd_page, help_text="Jump to a page: /page <n>.")
registry.register("first", cmd_first, help_text="Jump to the first page with active tasks.")
registry.register("last", cmd_last, help_text="Jump to the last page.")
registry.register("pages", cmd_pages, help_text="List pages with fill and state.")
registry.register("suggest", cmd_suggest, help_text="Recall finished tasks: /suggest <text>.")
registry.register("log", cmd_log, help_text="Finished tasks by month, newest first: /log [YYYY-MM].")
registry.register("size", cmd_size, help_text="Set page size for new pages: /size <n>.")
registry.register("font", cmd_font, help_text="Set font size: /font <n>.")
registry.register("export", cmd_export, help_text="Export to JSON: /export [file or dir].")
registry.register("import", cmd_import, help_text="Import from JSON: /import <file>.")
registry.register("reset", cmd_reset, help_text="Delete everything: /reset yes.")
