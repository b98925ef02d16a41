from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from .config import get_log_level, get_server_config, load_board_config
from .constants import STATE_DIR_NAME
from .logging_utils import configure_logging
from .server import create_app
from .task_engine.audit import format_summary
from .task_engine.board import TaskBoard, task_view
from .task_engine.exchange import export_filename
from .task_engine.model import Priority, TaskStatus
from .task_engine.query import parse_query
from .task_engine.validation import BoardValidationError, PayloadParseError

_PRIORITY_STYLE = {"high": "bold red", "medium": "yellow", "low": "dim"}


def _resolve_project_dir(project_dir: Optional[str]) -> Path:
    return Path(project_dir).expanduser().resolve() if project_dir else Path.cwd().resolve()


def _config(args: argparse.Namespace) -> dict[str, Any]:
    config, err = load_board_config(_resolve_project_dir(args.project_dir))
    if err:
        logger.warning("Ignoring board config: {}", err)
    return config


def _board(args: argparse.Namespace) -> TaskBoard:
    project = _resolve_project_dir(args.project_dir)
    return TaskBoard(project / STATE_DIR_NAME, _config(args))


def _emit(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False) + '\n')


def _fail(message: str) -> int:
    sys.stderr.write(message + '\n')
    return 1


def _fail_validation(exc: BoardValidationError) -> int:
    for message in exc.messages():
        sys.stderr.write(f"- {message}\n")
    return 1


def _query_arg(parts: Optional[list[str]]) -> str:
    return ' '.join(parts or [])


def _view(board: TaskBoard, task: Any) -> dict[str, Any]:
    return task_view(task, audit_mode=board.state.audit_mode_enabled)


# ---------------------------------------------------------------------------
# task
# ---------------------------------------------------------------------------

def _task_add(args: argparse.Namespace) -> int:
    board = _board(args)
    raw: dict[str, Any] = {
        'title': args.title,
        'description': args.description,
        'priority': args.priority,
        'tags': args.tag or [],
        'estimate_minutes': args.estimate,
        'due_at': args.due,
    }
    try:
        task = board.create_task(raw)
    except BoardValidationError as exc:
        return _fail_validation(exc)
    _emit({'task': _view(board, task)})
    return 0


def _task_update(args: argparse.Namespace) -> int:
    board = _board(args)
    options = {
        'title': args.title,
        'description': args.description,
        'priority': args.priority,
        'tags': args.tag,
        'estimate_minutes': args.estimate,
        'due_at': args.due,
        'status': args.status,
        'reviewer_notes': args.reviewer_notes,
        'rubric_score': args.rubric_score,
        'rubric_comment': args.rubric_comment,
    }
    raw = {key: value for key, value in options.items() if value is not None}
    if args.clear_due:
        raw['due_at'] = None
    try:
        task = board.update_task(args.task_id, raw)
    except BoardValidationError as exc:
        return _fail_validation(exc)
    if task is None:
        return _fail(f"Task {args.task_id} not found")
    _emit({'task': _view(board, task)})
    return 0


def _task_rm(args: argparse.Namespace) -> int:
    board = _board(args)
    if not board.delete_task(args.task_id):
        return _fail(f"Task {args.task_id} not found")
    _emit({'deleted': args.task_id})
    return 0


def _task_mv(args: argparse.Namespace) -> int:
    board = _board(args)
    task = board.move_task(args.task_id, args.status)
    if task is None:
        return _fail(f"Task {args.task_id} not found")
    _emit({'task': _view(board, task)})
    return 0


def _task_start(args: argparse.Namespace) -> int:
    board = _board(args)
    task = board.toggle_start(args.task_id)
    if task is None:
        return _fail(f"Task {args.task_id} not found")
    _emit({'task': _view(board, task)})
    return 0


def _task_list(args: argparse.Namespace) -> int:
    board = _board(args)
    tasks = board.search(_query_arg(args.query))
    _emit({'tasks': [_view(board, task) for task in tasks]})
    return 0


# ---------------------------------------------------------------------------
# board / query
# ---------------------------------------------------------------------------

def _board_table(args: argparse.Namespace) -> int:
    board = _board(args)
    audit_mode = board.state.audit_mode_enabled
    table = Table(title=f"Audit board{' (audit mode)' if audit_mode else ''}")
    table.add_column("Status", style="bold")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Priority")
    table.add_column("Tags")
    table.add_column("Est (min)", justify="right")
    table.add_column("Due")
    table.add_column("Progress", justify="right")
    if audit_mode:
        table.add_column("Rubric", justify="right")

    for status, tasks in board.columns(_query_arg(args.query)).items():
        for task in tasks:
            view = _view(board, task)
            priority = view['priority']
            row = [
                status,
                task.id[:8],
                task.title,
                f"[{_PRIORITY_STYLE[priority]}]{priority}[/]",
                ", ".join(task.tags),
                str(task.estimate_minutes),
                task.due_at or "-",
                f"{view['progress']}%",
            ]
            if audit_mode:
                row.append("-" if task.rubric_score is None else str(task.rubric_score))
            table.add_row(*row)

    Console().print(table)
    return 0


def _query(args: argparse.Namespace) -> int:
    _emit({'query': parse_query(_query_arg(args.query)).to_dict()})
    return 0


# ---------------------------------------------------------------------------
# audit
# ---------------------------------------------------------------------------

def _audit_list(args: argparse.Namespace) -> int:
    board = _board(args)
    events = board.audit_events(action=args.action, task_id=args.task)
    _emit({'events': [event.to_dict() for event in events], 'total': len(events)})
    return 0


def _audit_summary(args: argparse.Namespace) -> int:
    board = _board(args)
    sys.stdout.write(format_summary(board.audit_summary()) + '\n')
    return 0


def _audit_mode(args: argparse.Namespace) -> int:
    board = _board(args)
    enabled = board.set_audit_mode(args.mode == 'on')
    _emit({'audit_mode_enabled': enabled})
    return 0


# ---------------------------------------------------------------------------
# import / export / reset
# ---------------------------------------------------------------------------

def _export(args: argparse.Namespace) -> int:
    board = _board(args)
    text = board.export_text()
    if args.output == '-':
        sys.stdout.write(text + '\n')
        return 0
    path = Path(args.output) if args.output else Path.cwd() / export_filename()
    path.write_text(text + '\n', encoding='utf-8')
    _emit({'exported': str(path), 'tasks': len(board.state.tasks), 'audit': len(board.state.audit)})
    return 0


def _import(args: argparse.Namespace) -> int:
    path = Path(args.file).expanduser()
    if not path.is_file():
        return _fail(f"File not found: {path}")
    board = _board(args)
    try:
        result = board.import_text(path.read_bytes())
    except PayloadParseError as exc:
        return _fail(str(exc))
    except BoardValidationError as exc:
        return _fail_validation(exc)
    _emit({
        'tasks': len(result.state.tasks),
        'audit': len(board.state.audit),
        'regenerated_ids': sum(1 for event in result.events if event.id_regenerated),
    })
    return 0


def _reset(args: argparse.Namespace) -> int:
    state = _board(args).reset()
    _emit({'status': 'reset', 'tasks': len(state.tasks)})
    return 0


def _server(args: argparse.Namespace) -> int:
    import uvicorn

    server_config = get_server_config(_config(args))
    app = create_app(project_dir=_resolve_project_dir(args.project_dir))
    uvicorn.run(
        app,
        host=args.host or server_config['host'],
        port=args.port or server_config['port'],
        reload=args.reload,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Audited task board')
    parser.add_argument('--project-dir', default=None, help='Target project directory (default: current working directory)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    priorities = [p.value for p in Priority]
    statuses = [s.value for s in TaskStatus]

    server = subparsers.add_parser('server', help='Start the web server')
    server.add_argument('--host', default=None)
    server.add_argument('--port', default=None, type=int)
    server.add_argument('--reload', action='store_true')
    server.set_defaults(func=_server)

    task = subparsers.add_parser('task', help='Manage tasks')
    task_sub = task.add_subparsers(dest='task_cmd', required=True)
    tadd = task_sub.add_parser('add', help='Create a task')
    tadd.add_argument('title')
    tadd.add_argument('--description', default='')
    tadd.add_argument('--priority', default='medium', choices=priorities)
    tadd.add_argument('--tag', action='append', help='Tag (repeatable)')
    tadd.add_argument('--estimate', default=0, type=float, help='Estimate in minutes')
    tadd.add_argument('--due', default=None, help='Due timestamp (ISO-8601)')
    tadd.set_defaults(func=_task_add)
    tupdate = task_sub.add_parser('update', help='Update task fields')
    tupdate.add_argument('task_id')
    tupdate.add_argument('--title', default=None)
    tupdate.add_argument('--description', default=None)
    tupdate.add_argument('--priority', default=None, choices=priorities)
    tupdate.add_argument('--tag', action='append', help='Replace tags (repeatable)')
    tupdate.add_argument('--estimate', default=None, type=float)
    tupdate.add_argument('--due', default=None)
    tupdate.add_argument('--clear-due', action='store_true')
    tupdate.add_argument('--status', default=None, choices=statuses)
    tupdate.add_argument('--reviewer-notes', default=None)
    tupdate.add_argument('--rubric-score', default=None, type=float)
    tupdate.add_argument('--rubric-comment', default=None)
    tupdate.set_defaults(func=_task_update)
    trm = task_sub.add_parser('rm', help='Delete a task')
    trm.add_argument('task_id')
    trm.set_defaults(func=_task_rm)
    tmv = task_sub.add_parser('mv', help='Move a task to another column')
    tmv.add_argument('task_id')
    tmv.add_argument('status', choices=statuses)
    tmv.set_defaults(func=_task_mv)
    tstart = task_sub.add_parser('start', help='Start or stop the timer on a task')
    tstart.add_argument('task_id')
    tstart.set_defaults(func=_task_start)
    tlist = task_sub.add_parser('list', help='List tasks matching a search')
    tlist.add_argument('query', nargs='*')
    tlist.set_defaults(func=_task_list)

    board = subparsers.add_parser('board', help='Show the board as a table')
    board.add_argument('query', nargs='*')
    board.set_defaults(func=_board_table)

    query = subparsers.add_parser('query', help='Show how a search string is parsed')
    query.add_argument('query', nargs='*')
    query.set_defaults(func=_query)

    audit = subparsers.add_parser('audit', help='Inspect the audit log')
    audit_sub = audit.add_subparsers(dest='audit_cmd', required=True)
    alist = audit_sub.add_parser('list', help='List audit events (newest first)')
    alist.add_argument('--action', default=None, choices=['all', 'CREATE', 'UPDATE', 'DELETE', 'MOVE'])
    alist.add_argument('--task', default=None, help='Task id substring')
    alist.set_defaults(func=_audit_list)
    asummary = audit_sub.add_parser('summary', help='Print a text summary of the audit log')
    asummary.set_defaults(func=_audit_summary)

    mode = subparsers.add_parser('audit-mode', help='Turn audit mode on or off')
    mode.add_argument('mode', choices=['on', 'off'])
    mode.set_defaults(func=_audit_mode)

    export = subparsers.add_parser('export', help='Export the board to a JSON file')
    export.add_argument('--output', default=None, help="Output file ('-' for stdout)")
    export.set_defaults(func=_export)

    imp = subparsers.add_parser('import', help='Replace the board with an exported file')
    imp.add_argument('file')
    imp.set_defaults(func=_import)

    reset = subparsers.add_parser('reset', help='Discard the board and its audit log')
    reset.set_defaults(func=_reset)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(get_log_level(_config(args)))
    handler = getattr(args, 'func', None)
    if handler is None:
        parser.print_help()
        return 1
    return int(handler(args) or 0)
