import argparse
import logging
import sys

from adsearch.utils.colors import bcolors
from adsearch.utils.completer import COMMANDS, canonical_command, canonical_flag
from adsearch.utils.helpers import parse_identity
from adsearch._version import BANNER, __version__

# https://stackoverflow.com/questions/14591168/argparse-dont-show-usage-on-h
class ADSearchParser(argparse.ArgumentParser):
	def error(self, message):
		print(message)
		sys.exit(0)

def arg_parse(argv=None):
	parser = ADSearchParser(description=f"Simplified Active Directory user and computer search, version {bcolors.OKBLUE + __version__ + bcolors.ENDC}")
	parser.add_argument('target', action='store', metavar='target', help='[[domain/]username[:password]@]<targetName or address>')
	parser.add_argument('-p', '--port', dest='port', action='store', help='LDAP server port. (Default: 389|636)', type=int)
	parser.add_argument('-d', '--debug', dest='debug', action='store_true', help='Enable debug output')
	parser.add_argument('--stack-trace', dest='stack_trace', action='store_true', help='raise exceptions and exit if unhandled errors')
	parser.add_argument('-q', '--query', dest='query', action='store', help='Command to be executed one-time')
	parser.add_argument('--backend', dest='backend', action='store', choices=['auto', 'managed', 'raw'], default='auto', help='Directory client to use (Default: auto)')
	parser.add_argument('--search-base', dest='search_base', action='store', help='Base DN for searches (Default: defaultNamingContext)')
	parser.add_argument('-v', '--version', dest='version', action='version', version=BANNER)

	ns = parser.add_argument_group('name resolution')
	ns_group_parser = ns.add_mutually_exclusive_group()
	ns_group_parser.add_argument('--use-system-nameserver', action='store_true', default=False, dest='use_system_ns', help='Use system nameserver to resolve hostname/domain')
	ns_group_parser.add_argument('-ns', '--nameserver', dest='nameserver', action='store', help='Specify custom nameserver. If not specified, domain controller will be used instead')
	ns.add_argument('--dns-timeout', dest='dns_timeout', action='store', type=float, default=3, help='DNS query timeout in seconds (Default: 3)')
	ns.add_argument('--dns-tcp', dest='dns_tcp', action='store_true', default=False, help='Query DNS over TCP')

	protocol = parser.add_argument_group('protocol')
	group = protocol.add_mutually_exclusive_group()
	group.add_argument('--use-ldap', dest='use_ldap', action='store_true', help='[Optional] Use LDAP instead of LDAPS')
	group.add_argument('--use-ldaps', dest='use_ldaps', action='store_true', help='[Optional] Use LDAPS instead of LDAP')
	group.add_argument('--use-gc', dest='use_gc', action='store_true', help='[Optional] Use GlobalCatalog (GC) protocol')
	group.add_argument('--use-gc-ldaps', dest='use_gc_ldaps', action='store_true', help='[Optional] Use GlobalCatalog (GC) protocol for LDAPS')

	auth = parser.add_argument_group('authentication')
	auth.add_argument('-H', '--hashes', action="store", metavar="LMHASH:NTHASH", help='NTLM hashes, format is LMHASH:NTHASH')
	auth.add_argument("--use-simple-auth", dest="use_simple_auth", action="store_true", default=False, help='Authenticate with SIMPLE authentication')
	auth.add_argument('--no-pass', action="store_true", help="don't ask for password")

	if argv is None and len(sys.argv) == 1:
		parser.print_help()
		sys.exit(1)

	args = parser.parse_args(argv)

	parsed_identity = parse_identity(args)
	args.domain = parsed_identity['domain']
	args.username = parsed_identity['username']
	args.password = parsed_identity['password']
	args.lmhash = parsed_identity['lmhash']
	args.nthash = parsed_identity['nthash']
	args.ldap_address = parsed_identity['ldap_address']

	return args

class Helper:
	def parse_properties(value):
		"""Parse the properties argument into a list."""
		if not value:
			return []
		return [prop.strip() for prop in value.strip().split(',') if prop.strip()]

	def parse_select(value):
		"""Parse the select argument into a list or return the digit if value is a digit."""
		if value and value.isdigit():
			return int(value)
		return [v.strip() for v in value.strip().split(',')] if value else []

	def parse_tableview(value):
		VALID_TABLE_VIEWS = ["md", "csv", "default"]
		if value and value.lower() not in VALID_TABLE_VIEWS:
			raise ValueError(f"Invalid tableview: {value}. Valid options are: {', '.join(VALID_TABLE_VIEWS)}")
		return value.lower() if value else value

def _add_output_arguments(subparser):
	subparser.add_argument('-Properties', action='store', dest='properties', type=Helper.parse_properties)
	subparser.add_argument('-SearchBase', action='store', dest='searchbase')
	subparser.add_argument('-Select', action='store', dest='select', type=Helper.parse_select)
	subparser.add_argument('-Where', action='store', dest='where')
	subparser.add_argument('-TableView', nargs='?', const='default', default='', dest='tableview', help="Format the output as a table. Options: 'md', 'csv'. Defaults to standard table if no value is provided.", type=Helper.parse_tableview)
	subparser.add_argument('-SortBy', action='store', dest='sort_by')
	subparser.add_argument('-OutFile', action='store', dest='outfile')
	subparser.add_argument('-Count', action='store_true', dest='count')
	subparser.add_argument('-NoWrap', action='store_true', default=False, dest='nowrap')
	subparser.add_argument('-Exact', action='store_true', default=False, dest='exact', help='Match values exactly instead of as substrings')

# bare value after the command name
POSITIONAL_FLAG = {
	'Search-ADUser': '-UserName',
	'Search-ADComputer': '-ComputerName',
}

def normalize_command(cmd):
	"""Fix the casing of the command and its flags, e.g. search-aduser -firstname -> Search-ADUser -FirstName

	Returns None when the command or one of its flags is unknown.
	"""
	if not cmd:
		return None

	command = canonical_command(cmd[0])
	if not command:
		print("Invalid command")
		return None

	normalized = [command]
	expects_value = False
	for token in cmd[1:]:
		if normalized[-1] == '-TableView' and token.lower() in ('md', 'csv', 'default'):
			normalized.append(token)
		elif token.startswith('-') and not expects_value:
			flag = canonical_flag(command, token)
			if not flag:
				print(f"Unrecognized argument: {token}")
				return None
			normalized.append(flag)
			expects_value = flag not in ('-Exact', '-Count', '-NoWrap', '-Unique', '-NoNumber', '-TableView')
		elif not expects_value and command in POSITIONAL_FLAG and POSITIONAL_FLAG[command] not in normalized:
			normalized += [POSITIONAL_FLAG[command], token]
		else:
			normalized.append(token)
			expects_value = False
	return normalized

def adsearch_arg_parse(cmd):
	parser = ADSearchParser(exit_on_error=False)
	subparsers = parser.add_subparsers(dest='module')

	search_aduser_parser = subparsers.add_parser('Search-ADUser', exit_on_error=False)
	search_aduser_parser.add_argument('-FirstName', action='store', dest='first_name')
	search_aduser_parser.add_argument('-LastName', action='store', dest='last_name')
	search_aduser_parser.add_argument('-UserName', action='store', dest='user_name')
	search_aduser_parser.add_argument('-Email', action='store', dest='email')
	_add_output_arguments(search_aduser_parser)

	search_adcomputer_parser = subparsers.add_parser('Search-ADComputer', exit_on_error=False)
	search_adcomputer_parser.add_argument('-ComputerName', action='store', dest='computer_name')
	search_adcomputer_parser.add_argument('-IPAddress', action='store', dest='ip_address')
	_add_output_arguments(search_adcomputer_parser)

	subparsers.add_parser('Get-Backend', exit_on_error=False)

	history_parser = subparsers.add_parser('history', exit_on_error=False)
	history_parser.add_argument('-Last', action='store', type=int, default=10, dest='last')
	history_parser.add_argument('-Unique', action='store_true', dest='unique')
	history_parser.add_argument('-NoNumber', action='store_true', dest='noNumber')

	subparsers.add_parser('clear', exit_on_error=False)
	subparsers.add_parser('exit', exit_on_error=False)

	cmd = normalize_command(cmd)
	if cmd is None:
		return None

	try:
		return parser.parse_args(cmd)
	except (argparse.ArgumentError, ValueError) as e:
		print(str(e))
		logging.debug(f"Failed to parse {cmd}: {e}")
		return None
	except SystemExit:
		return None
