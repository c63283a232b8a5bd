#!/usr/bin/env python3
import csv
import datetime
import logging
import re
from io import StringIO

from tabulate import tabulate as table

from adsearch.lib.resolver import LDAP
from adsearch.utils.logging import LOG
from adsearch.utils.helpers import IDict

TABLE_FMT_MAP = {
    "default": "simple",
    "md": "github",
    "csv": "csv",
}

WHERE_OPERATORS = r' con | cont | conta | contai | contain | contains | eq | equ | equa | equal | not | != |!=| = '

class FORMATTER:
    def __init__(self, pv_args, config=None):
        self.__newline = '\n'
        self.args = pv_args

        self.config = {
            'wrap_length': 100,            # Text wrap length for large values
            'padding': 5,                  # Extra padding for attribute names
            'csv_quote_all': True,
            'show_empty_values': False,
        }
        if config:
            self.config.update(config)

    def _emit(self, text):
        if getattr(self.args, 'outfile', None):
            LOG.write_to_file(self.args.outfile, text)
        print(text)

    def count(self, entries):
        self._emit(str(len(entries)))

    def format_value(self, value):
        if value is None:
            return ""
        if isinstance(value, datetime.datetime):
            return LDAP.format_datetime(value)
        if isinstance(value, (list, tuple)):
            return [self.format_value(v) for v in value]
        return str(value)

    def get_max_len(self, lst):
        return len(max(lst, key=len)) + self.config['padding'] if lst else self.config['padding']

    def beautify(self, value, lens):
        if isinstance(value, str) and not getattr(self.args, 'nowrap', False) and len(value) > self.config['wrap_length']:
            step = self.config['wrap_length']
            chunks = [value[i:i + step] for i in range(0, len(value), step)]
            return (self.__newline + ''.ljust(lens)).join(chunks)
        return value

    def print(self, entries):
        for entry in entries:
            attributes = entry['attributes']
            max_len = self.get_max_len(list(attributes.keys()))
            have_entry = False
            for attr, value in attributes.items():
                value = self.format_value(value)
                if isinstance(value, list):
                    if not value and not self.config['show_empty_values']:
                        continue
                    value = f"{self.__newline.ljust(max_len + 3)}".join(value)
                elif value == "" and not self.config['show_empty_values']:
                    continue
                have_entry = True
                self._emit(f"{attr.ljust(max_len)}: {self.beautify(value, max_len + 2)}")
            if have_entry:
                self._emit("")

    def print_index(self, entries):
        self.print(entries[0:self.args.select])

    def print_select(self, entries):
        select_attributes = self.args.select
        for entry in entries:
            attributes = entry['attributes']
            for attr in select_attributes:
                if attr not in attributes:
                    continue
                value = self.format_value(attributes.get(attr))
                if isinstance(value, list):
                    value = f"{self.__newline.ljust(self.get_max_len(select_attributes) + 2)}".join(value)
                if value == "" and not self.config['show_empty_values']:
                    continue
                if len(select_attributes) == 1:
                    self._emit(value)
                else:
                    self._emit(f"{attr.ljust(self.get_max_len(select_attributes))}: {value}")
            if len(select_attributes) != 1:
                self._emit("")

    def print_table(self, entries, headers, align=None):
        table_format = TABLE_FMT_MAP.get(getattr(self.args, 'tableview', None) or "default", "simple")
        rows = [row for row in entries if not all(e == '' for e in row)]

        if table_format == "csv":
            output = StringIO()
            csv_writer = csv.writer(output, quoting=csv.QUOTE_ALL if self.config['csv_quote_all'] else csv.QUOTE_MINIMAL)
            if headers:
                csv_writer.writerow(headers)
            csv_writer.writerows(rows)
            table_res = output.getvalue()
            output.close()
        else:
            table_res = table(rows, headers, numalign="left" if not align else align, tablefmt=table_format)

        print()
        self._emit(table_res)
        print()

    def table_view(self, entries):
        if not entries:
            return

        if isinstance(getattr(self.args, 'select', None), list) and self.args.select:
            headers = self.args.select
        else:
            headers = list(entries[0]['attributes'].keys())

        rows = []
        for entry in entries:
            row = []
            for head in headers:
                value = self.format_value(IDict(entry['attributes']).get(head))
                row.append(", ".join(value) if isinstance(value, list) else value)
            rows.append(row)

        self.print_table(entries=rows, headers=headers)

    def sort_entries(self, entries, sort_option):
        if not entries:
            return entries
        if sort_option not in entries[0]['attributes']:
            raise KeyError("%s key not found" % (sort_option))

        def sort_key(entry):
            value = entry['attributes'].get(sort_option)
            if value is None:
                return (0, "")
            if isinstance(value, datetime.datetime):
                return (1, value.isoformat())
            if isinstance(value, (list, tuple)):
                return (1, ", ".join(str(v) for v in value).lower())
            return (1, str(value).lower())

        return sorted(entries, key=sort_key)

    def alter_entries(self, entries, cond):
        """Keep entries matching a -Where condition such as "UserName contains admin"."""
        try:
            left, right = re.split(WHERE_OPERATORS, cond, maxsplit=1, flags=re.IGNORECASE)
            operator = re.search(WHERE_OPERATORS, cond, re.IGNORECASE).group(0)
        except (ValueError, AttributeError):
            logging.error('Where argument format error. (e.g. "UserName contains admin")')
            return None

        left = left.strip("'").strip('"').strip()
        operator = operator.strip().lower()
        right = right.strip().strip("'").strip('"').casefold()

        results = []
        for entry in entries:
            attributes = entry['attributes']
            if left not in attributes:
                logging.error(f"{left} key not found")
                return None
            value = self.format_value(attributes.get(left))
            value = ", ".join(value) if isinstance(value, list) else value
            value = value.casefold()

            if "contains".startswith(operator) and len(operator) >= 3:
                matched = right in value
            elif operator in ("=",) or ("equal".startswith(operator) and len(operator) >= 2):
                matched = right == value
            elif operator in ("not", "!="):
                matched = bool(value) if right == "null" else right != value
            else:
                logging.error('Invalid operator')
                return None

            if matched:
                results.append(entry)
        return results
