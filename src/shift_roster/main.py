"""
Main Entry Point for the Shift Roster

Loads settings, connects to the remote store and starts the GUI, with
logging and global error handling.
"""

import sys
import logging
import argparse
import traceback
from datetime import datetime
from pathlib import Path
from tkinter import messagebox
from typing import List, Optional

from .config import ConfigurationError, Settings, load_settings
from .data_manager import DataManager
from .shift_types import ShiftTypeRegistry


def setup_logging(log_dir: Path = Path("logs"), level: str = "INFO"):
    """Setup application logging"""
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / f"shift_roster_{datetime.now().strftime('%Y%m%d')}.log"

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger(__name__)


def check_dependencies():
    """Check if all required dependencies are available"""
    required_modules = [
        'customtkinter',
        'pandas',
        'openpyxl',
        'reportlab',
        'supabase',
        'dotenv',
        'holidays'
    ]

    missing_modules = []

    for module in required_modules:
        try:
            __import__(module)
        except ImportError:
            missing_modules.append(module)

    if missing_modules:
        error_msg = f"Missing required dependencies: {', '.join(missing_modules)}\n"
        error_msg += "Please install them using: pip install -e ."
        raise ImportError(error_msg)


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )

    try:
        messagebox.showerror("Application Error",
                             f"An unexpected error occurred:\n\n{exc_type.__name__}: {exc_value}")
    except Exception as e:
        logger.error(f"Failed to show error dialog: {e}")


class ShiftRosterApp:
    """Main application class"""

    def __init__(self, settings: Settings):
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.data_manager = None
        self.registry = None
        self.main_window = None

    def initialize(self) -> bool:
        """Initialize application components"""
        try:
            self.logger.info("Initializing Shift Roster Application")

            check_dependencies()
            self.logger.info("All dependencies available")

            self.data_manager = DataManager.from_settings(self.settings)
            self.logger.info("Connected to remote store")

            self.registry = ShiftTypeRegistry()
            self.logger.info(f"Shift type registry ready with {len(self.registry)} types")

            return True

        except ConfigurationError as e:
            self.logger.error(f"Configuration error: {e}")
            return False
        except Exception as e:
            self.logger.error(f"Failed to initialize application: {e}")
            self.logger.error(traceback.format_exc())
            return False

    def run(self) -> bool:
        """Run the main application"""
        try:
            if not self.initialize():
                self.show_initialization_error()
                return False

            self.logger.info("Starting GUI application")

            # Imported here so --create-tables works without a display
            from .ui import MainWindow

            self.main_window = MainWindow(
                data_manager=self.data_manager,
                registry=self.registry,
                start_date=self.settings.initial_month()
            )
            self.main_window.mainloop()

            self.logger.info("Application closed normally")
            return True

        except Exception as e:
            self.logger.error(f"Application error: {e}")
            self.logger.error(traceback.format_exc())
            self.show_runtime_error(e)
            return False

    def create_tables(self) -> bool:
        if not self.initialize():
            return False
        return self.data_manager.create_tables()

    def show_initialization_error(self):
        """Show initialization error dialog"""
        try:
            import tkinter as tk
            root = tk.Tk()
            root.withdraw()

            error_msg = """
Failed to initialize Shift Roster Application.

Please check:
1. All required dependencies are installed (pip install -e .)
2. SUPABASE_URL and SUPABASE_KEY are set in the environment or a .env file
3. The logs directory for detailed error information
            """
            messagebox.showerror("Initialization Error", error_msg.strip())
            root.destroy()

        except Exception as e:
            print(f"Failed to show initialization error: {e}")

    def show_runtime_error(self, error):
        """Show runtime error dialog"""
        try:
            error_msg = f"""
An error occurred while running the application:

{type(error).__name__}: {str(error)}

The application will now close. Please check the log files
for more detailed information.
            """
            messagebox.showerror("Runtime Error", error_msg.strip())

        except Exception as e:
            print(f"Failed to show runtime error: {e}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="shift-roster", description="Monthly shift roster")
    parser.add_argument("--env-file", help="Path to a .env file with Supabase settings")
    parser.add_argument("--create-tables", action="store_true",
                        help="Create the remote tables and exit")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    args = parse_args(argv)
    sys.excepthook = handle_exception

    try:
        settings = load_settings(args.env_file)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    logger = setup_logging(settings.log_dir, settings.log_level)
    logger.info("=" * 50)
    logger.info("Starting Shift Roster Application")
    logger.info("=" * 50)

    app = ShiftRosterApp(settings)
    if args.create_tables:
        success = app.create_tables()
    else:
        success = app.run()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
