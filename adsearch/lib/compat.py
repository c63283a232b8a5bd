import hashlib
import importlib.util
import logging

# hashlib.new as shipped by the interpreter, before any shim is applied
_hashlib_new = hashlib.new

def md4_available():
	"""True when the interpreter's OpenSSL still provides MD4 (it is legacy in OpenSSL 3)."""
	try:
		_hashlib_new('md4', b'')
	except ValueError:
		return False
	return True

def md4_shim_loaded():
	return hashlib.new is not _hashlib_new

def load_md4_shim():
	"""Serve hashlib.new('md4') from pycryptodomex so ldap3's NTLM bind works.

	Returns True when the shim was installed, False when it was not needed
	or is already in place.
	"""
	if md4_available() or md4_shim_loaded():
		return False

	from Cryptodome.Hash import MD4

	def new(name, data=b'', **kwargs):
		if name.lower() == 'md4':
			return MD4.new(data or None)
		return _hashlib_new(name, data, **kwargs)

	hashlib.new = new
	logging.debug("[Compat] MD4 not provided by hashlib, using Cryptodome.Hash.MD4")
	return True

def unload_md4_shim():
	hashlib.new = _hashlib_new

def managed_client_installed():
	"""True when the ldap3 Abstraction Layer (ObjectDef/Reader) is importable."""
	try:
		return importlib.util.find_spec('ldap3.abstract.cursor') is not None
	except ModuleNotFoundError:
		return False
