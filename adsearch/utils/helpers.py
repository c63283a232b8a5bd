import ipaddress
import logging
import re
import validators

from impacket.examples.utils import parse_target

def sanitize_component(component):
	return re.sub(r'[<>:"/\\|?*]', '', component) if component else None

def dn2domain(value):
	return '.'.join(re.findall(r'DC=([\w-]+)', value, flags=re.IGNORECASE)).lower()

def is_valid_fqdn(hostname: str) -> bool:
	if hostname and validators.domain(hostname):
		return True
	else:
		return False

def is_ipaddress(address):
	try:
		ipaddress.ip_address(address)
		return True
	except ValueError:
		return False

def is_ipv4address(address):
	try:
		ipaddress.IPv4Address(address)
		return True
	except ValueError:
		return False

def parse_hashes(hash_string):
	"""Split LMHASH:NTHASH (or a bare NT hash) into its parts."""
	if not hash_string:
		return {'lmhash': '', 'nthash': ''}

	hash_string = hash_string.strip()
	if ":" in hash_string:
		lmhash, nthash = hash_string.split(":", 1)
	elif len(hash_string) == 32:
		lmhash, nthash = '', hash_string
	else:
		raise ValueError("Invalid hash string, expected LMHASH:NTHASH")

	if not lmhash:
		lmhash = "aad3b435b51404eeaad3b435b51404ee"
	return {'lmhash': lmhash.upper(), 'nthash': nthash.upper()}

def parse_identity(args):
	domain, username, password, address = parse_target(args.target)

	if password == '' and username != '' and args.hashes is None and args.no_pass is False:
		from getpass import getpass
		password = getpass("Password:")

	if args.hashes is not None:
		hashes = parse_hashes(args.hashes)
		lmhash, nthash = hashes['lmhash'], hashes['nthash']
	else:
		lmhash = ''
		nthash = ''

	logging.debug(f"Parsed identity: domain={domain}, username={username}, address={address}")
	return {'domain': domain, 'username': username, 'password': password, 'lmhash': lmhash, 'nthash': nthash, 'ldap_address': address}

class IStr(str):
	def __hash__(self):
		return hash(self.lower())

	def __eq__(self, other):
		if isinstance(other, str):
			return self.lower() == other.lower()
		return NotImplemented

	def __ne__(self, other):
		return not (self == other)

class IDict(dict):
	"""dict with case-insensitive string keys, preserving the original key spelling."""
	@staticmethod
	def _key(k):
		return IStr(k) if isinstance(k, str) else k

	@classmethod
	def fromkeys(cls, keys, val=None):
		dic = cls()
		for i in keys:
			dic[i] = val
		return dic

	def __init__(self, *args, **kwargs):
		super(IDict, self).__init__()
		for k, v in dict(*args, **kwargs).items():
			self.__setitem__(k, v)

	def __contains__(self, key):
		return super(IDict, self).__contains__(IDict._key(key))

	def __getitem__(self, key):
		return super(IDict, self).__getitem__(IDict._key(key))

	def __setitem__(self, key, val):
		super(IDict, self).__setitem__(IDict._key(key), val)

	def __delitem__(self, key):
		super(IDict, self).__delitem__(IDict._key(key))

	def get(self, key, default=None):
		return super(IDict, self).get(IDict._key(key), default)

	def pop(self, key, *args):
		return super(IDict, self).pop(IDict._key(key), *args)

	def copy(self):
		return IDict(self.items())
