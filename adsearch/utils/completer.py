import os
import shlex
from sys import platform
if platform == "linux" or platform == "linux2":
    import gnureadline as readline
else:
    import readline

OUTPUT_FLAGS = ['-Properties', '-SearchBase', '-Select', '-Where', '-Count', '-NoWrap', '-TableView', '-SortBy', '-OutFile']

COMMANDS = {
    'Search-ADUser': ['-FirstName', '-LastName', '-UserName', '-Email', '-Exact'] + OUTPUT_FLAGS,
    'Search-ADComputer': ['-ComputerName', '-IPAddress', '-Exact'] + OUTPUT_FLAGS,
    'Get-Backend': [],
    'history': ['-Last', '-Unique', '-NoNumber'],
    'clear': [],
    'exit': [],
}

def canonical_command(name):
    for command in COMMANDS:
        if command.casefold() == name.casefold():
            return command
    return None

def canonical_flag(command, flag):
    for known in COMMANDS.get(command, []):
        if known.casefold() == flag.casefold():
            return known
    return None

class Completer(object):

    def _listdir(self, root):
        "List directory 'root' appending the path separator to subdirs."
        res = []
        for name in os.listdir(root):
            path = os.path.join(root, name)
            if os.path.isdir(path):
                name += os.sep
            res.append(name)
        return res

    def _complete_path(self, path=None):
        "Perform completion of filesystem path."
        if not path:
            return self._listdir('.')
        dirname, rest = os.path.split(path)
        tmp = dirname if dirname else '.'
        res = [os.path.join(dirname, p) for p in self._listdir(tmp) if p.startswith(rest)]
        if len(res) > 1 or not os.path.exists(path):
            return res
        if os.path.isdir(path):
            return [os.path.join(path, p) for p in self._listdir(path)]
        return [path + ' ']

    def candidates(self, left, text, right=''):
        """Completion candidates for text, given the line buffer around it."""
        try:
            left_tokens = shlex.split(left)
        except ValueError:
            left_tokens = shlex.split(left + '"')

        try:
            right_tokens = shlex.split(right)
        except ValueError:
            right_tokens = shlex.split(right + '"')

        if not left_tokens:
            prefix = text.strip()
            return [c + ' ' for c in COMMANDS if c.casefold().startswith(prefix.casefold())]

        command = canonical_command(left_tokens[0].strip())
        if not command:
            return []

        tokens_before = left_tokens[1:]
        used_flags = [t.casefold() for t in tokens_before + right_tokens if t.startswith('-')]

        if tokens_before and tokens_before[-1].casefold() == '-outfile':
            return self._complete_path(text if text else None)

        if text.startswith('-') or not text:
            return [
                flag + ' ' for flag in COMMANDS[command]
                if flag.casefold() not in used_flags and flag.casefold().startswith(text.casefold())
            ]
        return []

    def complete(self, text, state):
        buffer = readline.get_line_buffer()
        begidx = readline.get_begidx()
        endidx = readline.get_endidx()

        results = self.candidates(buffer[:begidx], text, buffer[endidx:]) + [None]
        return results[state]

    def setup_completer(self):
        readline.set_completer_delims(' \t\n;')
        readline.parse_and_bind("tab: complete")
        readline.set_completer(self.complete)
