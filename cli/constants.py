"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = [
    "register", "login", "logout",
    "add", "queue", "remove", "clear-queue", "upload",
    "files", "next", "prev", "search", "delete", "refresh",
    "stats", "dashboard", "download",
    "clear", "exit", "help",
]

SEARCH_OPTIONS = ["--type", "--min-size", "--max-size", "--from", "--to"]

# Friendly names accepted by `search --type`, mapped to MIME prefixes.
MIME_TYPE_ALIASES = {
    "image": "image/",
    "images": "image/",
    "video": "video/",
    "videos": "video/",
    "audio": "audio/",
    "text": "text/",
    "pdf": "application/pdf",
    "zip": "application/zip",
    "archive": "application/zip",
}

STYLE = Style.from_dict(
    {
        "prompt": "#2E86DE bold",
        "warning": "#F45935 bold",
    }
)

BLUE = "\033[38;2;46;134;222m"
GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
 ___ _ _     __   __         _ _
| __(_) |___ \\ \\ / /_ _ _  _| | |_
| _|| | / -_) \\ V / _` | || | |  _|
|_| |_|_\\___|  \\_/\\__,_|\\_,_|_|\\__|
{RESET}"""

WELCOME_TITLE = "FileVault CLI - Deduplicating file storage"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "filevault> "
LOGGED_OUT_PROMPT_TEXT = "filevault (login required)> "

PROGRESS_REFRESH_SECONDS = 0.2

HELP_TEXT = """Available commands:
  register <username> <password>      Register new user account
  login <username> <password>         Login and start a session
  logout                              End the session
  add <file> [file ...]               Validate files and add them to the upload queue
  queue                               Show the upload queue
  remove <item-id> [item-id ...]      Remove pending or failed uploads from the queue
  clear-queue                         Remove every queued item that is not uploading
  upload [file ...]                   Upload all pending files in one batch
  files [page]                        List your files (page 1 by default)
  next / prev                         Move between pages of the file list
  search [name] [options]             Search files
      --type <type>                     image, video, audio, text, pdf, zip or a MIME prefix
      --min-size <size>                 Minimum size, e.g. 500, 10KB, 2MB
      --max-size <size>                 Maximum size
      --from <YYYY-MM-DD>               Uploaded on or after
      --to <YYYY-MM-DD>                 Uploaded on or before
  delete <file-id> [file-id ...]      Delete files
  refresh                             Re-fetch the current list or search
  stats                               Show storage and deduplication statistics
  dashboard                           Show statistics and recent files
  download <file-id> [output_path]    Download a file (defaults to ./downloads/)
  clear                               Clear screen and redisplay welcome message
  help                                Show this help
  exit                                Exit REPL

Examples:
  login alice mypassword123
  add report.pdf photos/cat.png
  upload
  files 2
  search report --type pdf --min-size 100KB
  delete 42
  download 42 downloads/report-copy.pdf"""

DOWNLOADS_DIR = "downloads"
