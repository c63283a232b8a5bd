#!/usr/bin/env python3
import copy
import logging

from adsearch.lib.backends import select_backend, IP_ATTRIBUTE
from adsearch.lib.exceptions import InvalidCriteriaError
from adsearch.lib.filters import SearchMode, collect_criteria
from adsearch.lib.mappers import map_user, map_computer
from adsearch.lib.naming import NameResolver
from adsearch.utils.helpers import is_ipv4address

class ADSearch:
	"""Simplified user and computer searches over a bound directory session.

	The backend is chosen once, when the object is built, from the
	capabilities of conn's session.
	"""
	def __init__(self, conn, args=None, backend=None, resolver=None):
		self.conn = conn
		self.args = args
		self.ldap_session = conn.ldap_session
		self.root_dn = getattr(args, "search_base", None) or conn.get_root_dn()
		self.resolver = resolver or conn.get_resolver() or NameResolver(nameserver=conn.get_nameserver())
		self.backend = backend or select_backend(
			self.ldap_session,
			self.root_dn,
			resolver=self.resolver,
			prefer=getattr(args, "backend", None)
		)
		logging.debug(f"[ADSearch] Backend: {self.backend.name}, search base: {self.root_dn}")

	def _backend_for(self, search_base=None):
		if not search_base or search_base == self.backend.search_base:
			return self.backend
		backend = copy.copy(self.backend)
		backend.search_base = search_base
		return backend

	def search_aduser(self, first_name=None, last_name=None, user_name=None, email=None, mode=SearchMode.WILDCARD, search_base=None):
		"""Find users by first name, last name, account name and/or email.

		Every supplied value is ANDed. In WILDCARD mode values match as
		substrings, in EXACT mode as equality. With no value at all every
		user under the search base is returned.

		Returns a generator of UserRecord in directory order.
		"""
		mode = SearchMode.from_value(mode)
		criteria = collect_criteria([
			("givenName", first_name),
			("sn", last_name),
			("sAMAccountName", user_name),
			("mail", email),
		])
		entries = self._backend_for(search_base).search_users(criteria, mode)
		return (map_user(entry) for entry in entries)

	def search_adcomputer(self, computer_name=None, ip_address=None, mode=SearchMode.WILDCARD, search_base=None):
		"""Find computers by name and/or IPv4 address. The address always matches exactly."""
		mode = SearchMode.from_value(mode)
		ip_address = ip_address.strip() if ip_address else None
		if ip_address and not is_ipv4address(ip_address):
			raise InvalidCriteriaError(f"{ip_address} is not a valid IPv4 address")

		criteria = collect_criteria([
			("name", computer_name),
			(IP_ATTRIBUTE, ip_address),
		], exact_attributes=[IP_ATTRIBUTE])
		entries = self._backend_for(search_base).search_computers(criteria, mode)
		return (map_computer(entry, resolver=self.resolver) for entry in entries)
