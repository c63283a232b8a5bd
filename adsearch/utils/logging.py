#!/usr/bin/env python3
import os
import logging
from datetime import date
from sys import platform
if platform == "linux" or platform == "linux2":
    import gnureadline as readline
else:
    import readline

DEBUG = 'DEBUG'

class CustomFormatter(logging.Formatter):
    grey = '\033[2;37m'
    green = '\033[92m'
    yellow = '\033[93m'
    red = '\033[91m'
    bold_red = '\x1b[31;1m'
    reset = '\033[0m'

    def __init__(self, fmt):
        super().__init__()
        self.fmt = fmt
        self.FORMATS = {
            logging.DEBUG: self.grey + self.fmt + self.reset,
            logging.INFO: self.green + self.fmt + self.reset,
            logging.WARNING: self.yellow + self.fmt + self.reset,
            logging.ERROR: self.red + self.fmt + self.reset,
            logging.CRITICAL: self.bold_red + self.fmt + self.reset
        }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt, "%Y-%m-%d %H:%M:%S")
        return formatter.format(record)

class HistoryConsole:
    def __init__(self, histfile):
        self.histfile = os.path.expanduser(histfile)
        self.init_history()

    def init_history(self, histfile=None):
        histfile = histfile or self.histfile
        try:
            if os.path.exists(histfile):
                readline.read_history_file(histfile)
        except IOError as e:
            logging.error(f"Error reading history file {histfile}: {e}")

    def save_history(self, histfile=None):
        histfile = histfile or self.histfile
        try:
            readline.write_history_file(histfile)
        except IOError as e:
            logging.error(f"Error writing history file {histfile}: {e}")

class LOG:
    def __init__(self, folder_name, root_folder=None):
        if not root_folder:
            if os.name == 'nt':
                self.root_folder = os.path.join(os.environ.get('APPDATA', os.path.expanduser('~')), "adsearch")
            else:
                self.root_folder = os.path.join(os.path.expanduser('~'), ".adsearch")
        else:
            self.root_folder = root_folder

        self.folder_name = folder_name.lower()
        self.logs_folder = os.path.join(self.root_folder, "logs", self.folder_name)
        os.makedirs(self.logs_folder, exist_ok=True)

        self.file_name = "%s.log" % date.today()
        self.history_file = os.path.join(self.logs_folder, ".adsearch_history")
        self.history_console = None

    def load_history(self):
        self.history_console = HistoryConsole(self.history_file)

    def save_history(self):
        if self.history_console:
            self.history_console.save_history()

    def setup_logger(self, level=logging.INFO):
        if level == DEBUG:
            level = logging.DEBUG

        logger = logging.getLogger()
        logger.setLevel(logging.DEBUG)

        file_path = os.path.join(self.logs_folder, self.file_name)
        fileh = logging.FileHandler(file_path, 'a')
        fileh.setFormatter(logging.Formatter('[%(asctime)s] %(name)s %(levelname)s %(message)s'))
        logger.addHandler(fileh)

        stdout_handler = logging.StreamHandler()
        stdout_handler.setLevel(level)
        stdout_handler.setFormatter(CustomFormatter('[%(asctime)s] %(message)s'))
        logger.addHandler(stdout_handler)

        logging.debug("Logging directory is set to %s" % (self.logs_folder))
        return logger

    @staticmethod
    def write_to_file(file_name, text):
        abspath = os.path.expanduser(file_name)
        try:
            with open(abspath, "a") as f:
                f.write(text + "\n")
        except (IOError, PermissionError) as e:
            raise IOError(f"Error writing to {abspath} ({str(e)})")
        return True
