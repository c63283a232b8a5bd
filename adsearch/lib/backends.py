import logging
from collections import namedtuple

from impacket.ldap.ldaptypes import LDAP_SID

from adsearch.lib.compat import managed_client_installed, md4_available, load_md4_shim
from adsearch.lib.exceptions import BackendUnavailableError, HostResolutionError
from adsearch.lib.filters import Criterion, SearchMode, build_ldap_filter, build_query
from adsearch.lib.mappers import USER_ATTRIBUTES, COMPUTER_ATTRIBUTES

USER_CLASS = Criterion("samAccountType", "805306368", exact=True)
COMPUTER_CLASS = Criterion("objectClass", "computer", exact=True)
IP_ATTRIBUTE = "IPv4Address"

Capabilities = namedtuple("Capabilities", ["managed", "md4_shim", "reason"])

def probe_capabilities(ldap_session):
	"""Report which backends can serve searches on ldap_session.

	managed: the ldap3 Abstraction Layer is installed and the server
	published a schema with the user and computer object classes.
	md4_shim: hashlib lacks MD4, so NTLM binds need the compatibility shim.
	"""
	reason = None
	managed = managed_client_installed()
	if not managed:
		reason = "ldap3 abstraction layer is not installed"
	else:
		server = getattr(ldap_session, "server", None)
		schema = getattr(server, "schema", None)
		object_classes = getattr(schema, "object_classes", None)
		if not object_classes:
			managed = False
			reason = "server schema was not loaded"
		else:
			missing = [c for c in ("user", "computer") if c not in object_classes]
			if missing:
				managed = False
				reason = "schema lacks object class(es): {}".format(", ".join(missing))

	return Capabilities(managed=managed, md4_shim=not md4_available(), reason=reason)

def _has_ip_criterion(criterion):
	return criterion.attribute.lower() == IP_ATTRIBUTE.lower()

class SearchBackend:
	name = None

	def __init__(self, ldap_session, search_base, resolver=None, paged_size=1000):
		self.ldap_session = ldap_session
		self.search_base = search_base
		self.resolver = resolver
		self.paged_size = paged_size

	def search_users(self, criteria, mode=SearchMode.WILDCARD):
		raise NotImplementedError

	def search_computers(self, criteria, mode=SearchMode.WILDCARD):
		raise NotImplementedError

	def __repr__(self):
		return f"<{type(self).__name__} base={self.search_base!r}>"

class RawBackend(SearchBackend):
	"""Paged LDAP search with hand-built RFC 4515 filters."""
	name = "raw"

	def _paged_search(self, tag, ldap_filter, attributes):
		logging.debug(f"[{tag}] LDAP search filter: {ldap_filter}")
		entries = self.ldap_session.extend.standard.paged_search(
			self.search_base,
			ldap_filter,
			attributes=attributes,
			paged_size=self.paged_size,
			generator=True
		)
		for entry in entries:
			if entry.get("type") == "searchResRef":
				continue
			attributes_ = dict(entry.get("attributes") or {})
			raw_sid = (entry.get("raw_attributes") or {}).get("objectSid")
			if raw_sid:
				attributes_["objectSid"] = raw_sid
			yield {"dn": entry.get("dn"), "attributes": attributes_}

	def user_filter(self, criteria, mode=SearchMode.WILDCARD):
		return build_ldap_filter([USER_CLASS] + list(criteria), mode)

	def computer_filter(self, criteria, mode=SearchMode.WILDCARD):
		translated = []
		for criterion in criteria:
			if not _has_ip_criterion(criterion):
				translated.append(criterion)
				continue

			hostname = self.resolver.resolve_address(criterion.value) if self.resolver else None
			if not hostname:
				raise HostResolutionError(criterion.value)
			logging.debug(f"[Search-ADComputer] {criterion.value} resolved to {hostname}")
			translated.append(Criterion("dNSHostName", hostname, exact=True))

		return build_ldap_filter([COMPUTER_CLASS] + translated, mode)

	def search_users(self, criteria, mode=SearchMode.WILDCARD):
		return self._paged_search("Search-ADUser", self.user_filter(criteria, mode), USER_ATTRIBUTES)

	def search_computers(self, criteria, mode=SearchMode.WILDCARD):
		criteria = list(criteria)
		# raw attribute list has no IPv4Address, it is not stored in the directory
		attributes = [a for a in COMPUTER_ATTRIBUTES if a != IP_ATTRIBUTE]
		entries = self._paged_search("Search-ADComputer", self.computer_filter(criteria, mode), attributes)
		addresses = [c.value for c in criteria if _has_ip_criterion(c)]
		if not addresses:
			return entries
		return self._with_address(entries, addresses[0])

	@staticmethod
	def _with_address(entries, address):
		# matched through the reverse lookup of address, report it as searched
		for entry in entries:
			entry["attributes"][IP_ATTRIBUTE] = address
			yield entry

class ManagedBackend(SearchBackend):
	"""ldap3 Abstraction Layer: schema-derived ObjectDef queried through a Reader."""
	name = "managed"

	def __init__(self, ldap_session, search_base, resolver=None, paged_size=1000):
		super().__init__(ldap_session, search_base, resolver=resolver, paged_size=paged_size)
		self._definitions = {}

	def object_def(self, object_class, attributes):
		from ldap3.abstract.attrDef import AttrDef
		from ldap3.abstract.objectDef import ObjectDef

		if object_class not in self._definitions:
			object_def = ObjectDef(object_class, self.ldap_session)
			# auxiliary class attributes (sAMAccountName, objectSid...) are not walked by ObjectDef
			for attribute in attributes:
				try:
					object_def[attribute]
				except KeyError:
					object_def += AttrDef(attribute)
			self._definitions[object_class] = object_def
		return self._definitions[object_class]

	def _read(self, tag, object_class, query, attributes):
		from ldap3.abstract.cursor import Reader

		reader = Reader(self.ldap_session, self.object_def(object_class, attributes), self.search_base, query=query)
		logging.debug(f"[{tag}] Managed query: {query!r}")
		for entry in reader.search_paged(self.paged_size, attributes=attributes):
			yield self._to_raw(entry)

	@staticmethod
	def _to_raw(entry):
		attributes = dict(entry.entry_attributes_as_dict)
		raw_sid = entry.entry_raw_attributes.get("objectSid")
		if raw_sid:
			attributes["objectSid"] = LDAP_SID(data=raw_sid[0])
		return {"dn": entry.entry_dn, "attributes": attributes}

	def search_users(self, criteria, mode=SearchMode.WILDCARD):
		criteria = [Criterion("objectCategory", "person", exact=True)] + list(criteria)
		return self._read("Search-ADUser", "user", build_query(criteria, mode), USER_ATTRIBUTES)

	def search_computers(self, criteria, mode=SearchMode.WILDCARD):
		criteria = list(criteria)
		ip_criteria = [c for c in criteria if _has_ip_criterion(c)]
		server_criteria = [c for c in criteria if not _has_ip_criterion(c)]
		attributes = [a for a in COMPUTER_ATTRIBUTES if a != IP_ATTRIBUTE]
		entries = self._read("Search-ADComputer", "computer", build_query(server_criteria, mode), attributes)
		if not ip_criteria:
			return entries
		return self._filter_by_address(entries, ip_criteria[0].value)

	def _filter_by_address(self, entries, address):
		for entry in entries:
			hostname = entry["attributes"].get("dNSHostName")
			if isinstance(hostname, list):
				hostname = hostname[0] if hostname else None
			resolved = self.resolver.resolve_host(hostname) if (hostname and self.resolver) else None
			if resolved == address:
				entry["attributes"][IP_ATTRIBUTE] = resolved
				yield entry

def select_backend(ldap_session, search_base, resolver=None, prefer=None, paged_size=1000):
	"""Pick the backend once, from an explicit capability probe.

	prefer: None/'auto' picks managed when usable and raw otherwise,
	'managed' or 'raw' forces one.
	"""
	if ldap_session is None:
		raise BackendUnavailableError("No LDAP session available")

	prefer = (prefer or "auto").lower()
	if prefer not in ("auto", "managed", "raw"):
		raise ValueError(f"Invalid backend: {prefer}. Valid options are: auto, managed, raw")

	capabilities = probe_capabilities(ldap_session)
	logging.debug(f"[Backend] Capabilities: {capabilities}")

	if prefer == "managed" and not capabilities.managed:
		raise BackendUnavailableError(f"Managed client unavailable: {capabilities.reason}")

	if prefer != "raw" and capabilities.managed:
		logging.debug("[Backend] Using managed client (ldap3 abstraction layer)")
		return ManagedBackend(ldap_session, search_base, resolver=resolver, paged_size=paged_size)

	if capabilities.md4_shim:
		try:
			load_md4_shim()
		except ImportError as e:
			raise BackendUnavailableError(f"Raw search client requires an MD4 implementation: {e}")

	logging.debug("[Backend] Using raw paged search client")
	return RawBackend(ldap_session, search_base, resolver=resolver, paged_size=paged_size)
