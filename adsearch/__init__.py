#!/usr/bin/env python3
import logging
import os
import shlex
import sys

import ldap3

from adsearch.lib.compat import md4_shim_loaded
from adsearch.lib.backends import probe_capabilities
from adsearch.lib.exceptions import ADSearchError
from adsearch.lib.filters import SearchMode
from adsearch.search import ADSearch
from adsearch.utils.colors import bcolors
from adsearch.utils.completer import Completer
from adsearch.utils.connections import CONNECTION
from adsearch.utils.formatter import FORMATTER
from adsearch.utils.helpers import sanitize_component
from adsearch.utils.history import get_shell_history
from adsearch.utils.logging import LOG
from adsearch.utils.parsers import adsearch_arg_parse, arg_parse
from adsearch.utils.shell import get_prompt

def clear_screen():
    os.system('cls' if os.name == 'nt' else 'clear')

def run_search(adsearch, pv_args):
    """Run a parsed Search-ADUser/Search-ADComputer command and return formatter entries."""
    mode = SearchMode.EXACT if pv_args.exact else SearchMode.WILDCARD
    if pv_args.module == 'Search-ADUser':
        records = adsearch.search_aduser(
            first_name=pv_args.first_name,
            last_name=pv_args.last_name,
            user_name=pv_args.user_name,
            email=pv_args.email,
            mode=mode,
            search_base=pv_args.searchbase
        )
    else:
        records = adsearch.search_adcomputer(
            computer_name=pv_args.computer_name,
            ip_address=pv_args.ip_address,
            mode=mode,
            search_base=pv_args.searchbase
        )

    properties = pv_args.properties
    if isinstance(pv_args.select, list) and pv_args.select and not properties:
        properties = pv_args.select
    return [record.to_entry(properties) for record in records]

def render(entries, pv_args):
    if not entries:
        if pv_args.count:
            print(0)
        return

    formatter = FORMATTER(pv_args)
    if pv_args.where is not None:
        entries = formatter.alter_entries(entries, pv_args.where)
        if entries is None:
            return

    if pv_args.sort_by is not None:
        entries = formatter.sort_entries(entries, pv_args.sort_by)

    if pv_args.count:
        formatter.count(entries)
    elif pv_args.tableview:
        formatter.table_view(entries)
    elif pv_args.select is not None:
        if isinstance(pv_args.select, int):
            formatter.print_index(entries)
        else:
            formatter.print_select(entries)
    else:
        formatter.print(entries)

def print_backend(adsearch):
    capabilities = probe_capabilities(adsearch.ldap_session)
    print(f"Backend         : {bcolors.OKGREEN}{adsearch.backend.name}{bcolors.ENDC}")
    print(f"Search base     : {adsearch.backend.search_base}")
    print(f"Managed client  : {'available' if capabilities.managed else 'unavailable (%s)' % capabilities.reason}")
    print(f"MD4 shim        : {'loaded' if md4_shim_loaded() else ('required' if capabilities.md4_shim else 'not required')}")

def main():
    """
    Main entry point for adsearch.

    Handles command-line argument parsing, LDAP connection setup,
    and interactive command processing.
    """
    args = arg_parse()

    flat_domain = args.domain.split('.')[0] if '.' in args.domain else args.domain
    components = [sanitize_component(c.lower()) for c in (flat_domain, args.username, args.ldap_address) if c]
    folder_name = '-'.join(filter(None, components)) or "default-log"

    log_handler = LOG(folder_name)
    log_handler.setup_logger("DEBUG" if args.debug else logging.INFO)

    try:
        conn = CONNECTION(args)
        conn.init_ldap_session()
        adsearch = ADSearch(conn, args)

        if not args.query:
            log_handler.load_history()
            Completer().setup_completer()

        while True:
            try:
                cmd = args.query if args.query else input(get_prompt(adsearch))

                if cmd:
                    try:
                        cmd = shlex.split(cmd)
                    except ValueError as e:
                        if args.stack_trace:
                            raise e
                        logging.error(str(e))
                        continue

                    pv_args = adsearch_arg_parse(cmd)

                    if pv_args and pv_args.module:
                        try:
                            if pv_args.module in ('Search-ADUser', 'Search-ADComputer'):
                                if pv_args.outfile and os.path.exists(pv_args.outfile):
                                    logging.error("%s exists " % (pv_args.outfile))
                                    continue
                                render(run_search(adsearch, pv_args), pv_args)
                            elif pv_args.module == 'Get-Backend':
                                print_backend(adsearch)
                            elif pv_args.module == 'history':
                                for index, item in enumerate(get_shell_history(pv_args.last, pv_args.unique), start=1):
                                    print(item if pv_args.noNumber else f"[{index}] {item}")
                            elif pv_args.module == 'clear':
                                clear_screen()
                            elif pv_args.module == 'exit':
                                log_handler.save_history()
                                conn.close()
                                sys.exit(0)
                        except ldap3.core.exceptions.LDAPInvalidFilterError as e:
                            logging.error(str(e))
                        except ldap3.core.exceptions.LDAPAttributeError as e:
                            logging.error(str(e))
                        except KeyError as e:
                            logging.error(str(e).strip('"'))
                        except ADSearchError as e:
                            if args.stack_trace:
                                raise
                            logging.error(f"[{pv_args.module}] {e}")
            except KeyboardInterrupt:
                print()
            except EOFError:
                log_handler.save_history()
                print("Exiting...")
                conn.close()
                sys.exit(0)
            except (ldap3.core.exceptions.LDAPSocketSendError,
                    ldap3.core.exceptions.LDAPSocketReceiveError) as e:
                logging.info(f"LDAP Socket Error: {str(e)}")
                conn.reset_connection()
                log_handler.save_history()
            except ldap3.core.exceptions.LDAPSessionTerminatedByServerError:
                logging.warning("Server connection terminated. Trying to reconnect")
                conn.reset_connection()
                log_handler.save_history()
            except ldap3.core.exceptions.LDAPInvalidDnError as e:
                logging.error(f"LDAPInvalidDnError: {str(e)}")
            except Exception as e:
                if args.stack_trace:
                    log_handler.save_history()
                    raise
                logging.error(str(e))

            if args.query:
                conn.close()
                sys.exit(0)

    except ldap3.core.exceptions.LDAPSocketOpenError as e:
        print(str(e))
    except ldap3.core.exceptions.LDAPBindError as e:
        print(str(e))
    except ADSearchError as e:
        if args.stack_trace:
            raise
        logging.error(str(e))

if __name__ == '__main__':
    main()
