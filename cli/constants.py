"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "ls", "pending", "forget", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#2E9BF0 bold",
        "command": "#00C16E bold",
    }
)

BLUE = "\033[38;2;46;155;240m"
GREEN = "\033[38;2;0;193;110m"
YELLOW = "\033[38;2;240;190;46m"
RED = "\033[38;2;230;72;60m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
 ███╗   ███╗███████╗██████╗ ██╗ █████╗  ██████╗ ██████╗ ██╗██████╗
 ████╗ ████║██╔════╝██╔══██╗██║██╔══██╗██╔════╝ ██╔══██╗██║██╔══██╗
 ██╔████╔██║█████╗  ██║  ██║██║███████║██║  ███╗██████╔╝██║██║  ██║
 ██║╚██╔╝██║██╔══╝  ██║  ██║██║██╔══██║██║   ██║██╔══██╗██║██║  ██║
 ██║ ╚═╝ ██║███████╗██████╔╝██║██║  ██║╚██████╔╝██║  ██║██║██████╔╝
 ╚═╝     ╚═╝╚══════╝╚═════╝ ╚═╝╚═╝  ╚═╝ ╚═════╝ ╚═╝  ╚═╝╚═╝╚═════╝
{RESET}"""

WELCOME_TITLE = "MediaGrid CLI - Resumable File Uploads"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "mediagrid> "

HELP_TEXT = """Available commands:
  upload <paths...> [--to <dir>]      Upload files or directories (large files are chunked and resumable)
  ls [dir]                            List a server directory (default /)
  pending                             Show interrupted uploads that can be resumed
  forget <key|all>                    Drop a pending upload record, or all of them
  clear                               Clear screen and redisplay welcome message
  help                                Show this help
  exit                                Exit REPL

Re-running 'upload' on an interrupted file resumes it from the chunks already on the server.
Examples:
  upload ~/Videos/holiday.mp4 --to /videos
  upload photos notes.txt
  ls /videos
  pending
  forget all"""
