import datetime
from dataclasses import dataclass, field, fields
from typing import Optional, Tuple

from adsearch.utils.helpers import IDict

class Record:
	DISPLAY_FIELDS = ()

	@classmethod
	def field_names(cls):
		return [f.name for f in fields(cls)]

	def to_dict(self):
		return {name: getattr(self, name) for name in self.field_names()}

	def to_entry(self, properties=None):
		"""Return the record in the {"attributes": {...}} shape used by the formatter.

		properties selects the fields (case-insensitive), '*' selects all of
		them and None falls back to DISPLAY_FIELDS.
		"""
		if not properties:
			names = list(self.DISPLAY_FIELDS)
		elif '*' in properties:
			names = self.field_names()
		else:
			lookup = IDict((name, name) for name in self.field_names())
			names = []
			for prop in properties:
				name = lookup.get(prop.strip())
				if name is None:
					raise KeyError(f"{prop} is not a property of {type(self).__name__}. Valid properties are: {', '.join(self.field_names())}")
				names.append(name)

		attributes = IDict()
		for name in names:
			value = getattr(self, name)
			attributes[name] = list(value) if isinstance(value, tuple) else value
		return {"dn": self.DistinguishedName, "attributes": attributes}

@dataclass(frozen=True)
class UserRecord(Record):
	FirstName: str = ""
	LastName: str = ""
	UserName: str = ""
	Email: str = ""
	LastLogon: Optional[datetime.datetime] = None
	PasswordLastSet: Optional[datetime.datetime] = None
	DistinguishedName: str = ""
	SID: str = ""
	Groups: Tuple[str, ...] = field(default_factory=tuple)

	DISPLAY_FIELDS = ("FirstName", "LastName", "UserName", "Email")

@dataclass(frozen=True)
class ComputerRecord(Record):
	ComputerName: str = ""
	IPAddress: str = ""
	OperatingSystem: str = ""
	OSVersion: str = ""
	LastLogon: Optional[datetime.datetime] = None
	DistinguishedName: str = ""
	SID: str = ""

	DISPLAY_FIELDS = ("ComputerName", "IPAddress", "OperatingSystem")
