import logging

from adsearch.lib.records import UserRecord, ComputerRecord
from adsearch.lib.resolver import filetime_to_datetime, normalize_sid
from adsearch.utils.helpers import IDict

USER_ATTRIBUTES = [
	"givenName",
	"sn",
	"sAMAccountName",
	"cn",
	"mail",
	"lastLogon",
	"lastLogonTimestamp",
	"pwdLastSet",
	"distinguishedName",
	"objectSid",
	"memberOf",
]

COMPUTER_ATTRIBUTES = [
	"name",
	"cn",
	"sAMAccountName",
	"dNSHostName",
	"IPv4Address",
	"operatingSystem",
	"operatingSystemVersion",
	"lastLogon",
	"lastLogonTimestamp",
	"distinguishedName",
	"objectSid",
]

def _validated_attributes(entry, known):
	attributes = IDict()
	for attr, value in (entry.get("attributes") or {}).items():
		if attr not in known:
			logging.debug(f"[Mapper] Dropping unknown attribute {attr} from {entry.get('dn')}")
			continue
		attributes[attr] = value
	return attributes

def _text(attributes, name):
	value = attributes.get(name)
	if isinstance(value, (list, tuple)):
		value = value[0] if value else None
	if value is None:
		return ""
	if isinstance(value, bytes):
		value = value.decode(errors="replace")
	return str(value)

def _list(attributes, name):
	value = attributes.get(name)
	if value is None or value == "":
		return ()
	if isinstance(value, (list, tuple)):
		return tuple(str(v) for v in value)
	return (str(value),)

def _last_logon(attributes):
	return filetime_to_datetime(attributes.get("lastLogon")) or filetime_to_datetime(attributes.get("lastLogonTimestamp"))

def _dn(entry, attributes):
	return _text(attributes, "distinguishedName") or entry.get("dn") or ""

def map_user(entry):
	"""Map a raw {'dn', 'attributes'} user entry to a UserRecord."""
	attributes = _validated_attributes(entry, IDict.fromkeys(USER_ATTRIBUTES))
	return UserRecord(
		FirstName=_text(attributes, "givenName"),
		LastName=_text(attributes, "sn"),
		UserName=_text(attributes, "sAMAccountName") or _text(attributes, "cn"),
		Email=_text(attributes, "mail"),
		LastLogon=_last_logon(attributes),
		PasswordLastSet=filetime_to_datetime(attributes.get("pwdLastSet")),
		DistinguishedName=_dn(entry, attributes),
		SID=normalize_sid(attributes.get("objectSid")),
		Groups=_list(attributes, "memberOf"),
	)

def map_computer(entry, resolver=None):
	"""Map a raw computer entry to a ComputerRecord.

	IPv4Address is used as-is when present. Otherwise dNSHostName is
	looked up through resolver; a failed lookup leaves IPAddress empty.
	"""
	attributes = _validated_attributes(entry, IDict.fromkeys(COMPUTER_ATTRIBUTES))

	ip_address = _text(attributes, "IPv4Address")
	if not ip_address:
		hostname = _text(attributes, "dNSHostName")
		if hostname and resolver is not None:
			ip_address = resolver.resolve_host(hostname) or ""
			if not ip_address:
				logging.debug(f"[Mapper] Could not resolve {hostname}, leaving IPAddress empty")

	computer_name = _text(attributes, "name") or _text(attributes, "cn") or _text(attributes, "sAMAccountName").rstrip("$")

	return ComputerRecord(
		ComputerName=computer_name,
		IPAddress=ip_address,
		OperatingSystem=_text(attributes, "operatingSystem"),
		OSVersion=_text(attributes, "operatingSystemVersion"),
		LastLogon=_last_logon(attributes),
		DistinguishedName=_dn(entry, attributes),
		SID=normalize_sid(attributes.get("objectSid")),
	)
