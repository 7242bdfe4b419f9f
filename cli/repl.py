"""REPL with prompt_toolkit for user interaction."""

import os
import sys
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory

from cli.commands import (
    get_context,
    handle_add,
    handle_clear_queue,
    handle_dashboard,
    handle_delete,
    handle_download,
    handle_list,
    handle_login,
    handle_logout,
    handle_page,
    handle_queue,
    handle_refresh,
    handle_register,
    handle_remove,
    handle_search,
    handle_stats,
    handle_upload,
)
from cli.completer import FileVaultCompleter
from cli.constants import (
    HELP_TEXT,
    LOGGED_OUT_PROMPT_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.context import AppContext
from cli.models import (
    AddCommand,
    ClearQueueCommand,
    DashboardCommand,
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    LoginCommand,
    LogoutCommand,
    PageCommand,
    QueueCommand,
    RefreshCommand,
    RegisterCommand,
    RemoveCommand,
    SearchCommand,
    StatsCommand,
    UploadCommand,
)
from cli.parser import ParseError, parse_command
from common.logging_config import get_logger

logger = get_logger(__name__)

_HANDLERS = {
    RegisterCommand: handle_register,
    LoginCommand: handle_login,
    LogoutCommand: handle_logout,
    AddCommand: handle_add,
    QueueCommand: handle_queue,
    RemoveCommand: handle_remove,
    ClearQueueCommand: handle_clear_queue,
    UploadCommand: handle_upload,
    ListCommand: handle_list,
    PageCommand: handle_page,
    SearchCommand: handle_search,
    DeleteCommand: handle_delete,
    RefreshCommand: handle_refresh,
    StatsCommand: handle_stats,
    DashboardCommand: handle_dashboard,
    DownloadCommand: handle_download,
}


def clear_screen() -> None:
    """Clear the terminal screen (cross-platform)."""
    if sys.platform == "win32":
        os.system("cls")
    else:
        os.system("clear")


def show_welcome() -> None:
    print(LOGO)
    print(WELCOME_TITLE)
    print(WELCOME_HELP)


async def dispatch_command(cmd_obj, ctx: Optional[AppContext] = None) -> str:
    """Dispatch parsed command to appropriate handler."""
    handler = _HANDLERS.get(type(cmd_obj))
    if handler is None:
        return f"Unknown command type: {type(cmd_obj)}"
    return await handler(cmd_obj, ctx)


def _prompt_text(ctx: AppContext) -> str:
    if ctx.login_required or not ctx.session.is_active:
        return LOGGED_OUT_PROMPT_TEXT
    return PROMPT_TEXT


async def repl_loop(ctx: Optional[AppContext] = None) -> None:
    """Start interactive REPL with prompt_toolkit."""
    ctx = ctx or get_context()
    history = InMemoryHistory()
    session: PromptSession = PromptSession(
        completer=FileVaultCompleter(), history=history, style=STYLE
    )

    clear_screen()
    show_welcome()
    if not ctx.session.is_active:
        print("You are not logged in. Run: login <username> <password>\n")

    notified_logout = False
    try:
        while True:
            if ctx.login_required and not notified_logout:
                print("Session expired. Please log in again.")
                notified_logout = True
            elif not ctx.login_required:
                notified_logout = False

            try:
                user_input = await session.prompt_async([("class:prompt", _prompt_text(ctx))])

                if not user_input.strip():
                    continue

                if user_input.strip() == "exit":
                    print("Goodbye!")
                    break

                if user_input.strip() == "help":
                    print(HELP_TEXT)
                    continue

                if user_input.strip() == "clear":
                    clear_screen()
                    show_welcome()
                    continue

                cmd_obj = parse_command(user_input)
                result = await dispatch_command(cmd_obj, ctx)
                if result:
                    print(result)

            except ParseError as e:
                print(f"Error: {e}")
            except KeyboardInterrupt:
                continue
            except EOFError:
                print("\nGoodbye!")
                break
            except Exception as e:
                logger.error(f"Unexpected error: {e}", exc_info=True)
                print(f"Unexpected error: {e}")
    finally:
        await ctx.close()
