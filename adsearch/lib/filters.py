from enum import Enum

from ldap3.utils.conv import escape_filter_chars

class SearchMode(Enum):
	WILDCARD = "wildcard"
	EXACT = "exact"

	@classmethod
	def from_value(cls, value):
		"""Accept a SearchMode, its name, or a boolean strict flag."""
		if isinstance(value, cls):
			return value
		if value is None:
			return cls.WILDCARD
		if isinstance(value, bool):
			return cls.EXACT if value else cls.WILDCARD
		if isinstance(value, str):
			try:
				return cls[value.upper()]
			except KeyError:
				raise ValueError(f"Invalid search mode: {value}. Valid options are: wildcard, exact")
		raise ValueError(f"Invalid search mode: {value!r}")

class Criterion:
	__slots__ = ("attribute", "value", "exact")

	def __init__(self, attribute, value, exact=False):
		self.attribute = attribute
		self.value = value
		self.exact = exact

	def is_exact(self, mode):
		return self.exact or mode is SearchMode.EXACT

	def __eq__(self, other):
		if not isinstance(other, Criterion):
			return NotImplemented
		return (self.attribute, self.value, self.exact) == (other.attribute, other.value, other.exact)

	def __repr__(self):
		return f"Criterion({self.attribute!r}, {self.value!r}, exact={self.exact})"

def collect_criteria(pairs, exact_attributes=()):
	"""Keep the (attribute, value) pairs whose value was supplied, in order.

	Args:
		pairs (list): (attribute, value) tuples, value may be None or empty
		exact_attributes (iterable): attributes always compared with equality
	Returns:
		list: Criterion objects
	"""
	exact_attributes = [a.lower() for a in exact_attributes]
	criteria = []
	for attribute, value in pairs:
		if value is None:
			continue
		value = str(value).strip()
		if not value:
			continue
		criteria.append(Criterion(attribute, value, exact=attribute.lower() in exact_attributes))
	return criteria

# read as clause, value or attribute separators anywhere in a managed query value
_SEPARATORS = {',': '\\2c', ';': '\\3b', ':': '\\3a'}
# read as NOT, AND, OR or a comparison operator at the start of a managed query value
_LEADING_OPERATORS = {'!': '\\21', '&': '\\26', '|': '\\7c', '=': '\\3d', '<': '\\3c', '>': '\\3e', '~': '\\7e'}

def escape_value(value):
	"""Hex-escape value for both filter dialects, keeping '*' as a wildcard.

	Separators and leading operators are escaped in the raw dialect too, so
	the two dialects produce the same clause for the same input.
	"""
	escaped = ''.join(c if c == '*' else escape_filter_chars(c) for c in value)
	escaped = ''.join(_SEPARATORS.get(c, c) for c in escaped)
	if escaped and escaped[0] in _LEADING_OPERATORS:
		escaped = _LEADING_OPERATORS[escaped[0]] + escaped[1:]
	return escaped

def _wrap(value, exact):
	if exact:
		return value
	value = value.strip('*')
	if not value:
		return "*"
	return f"*{value}*"

def build_ldap_filter(criteria, mode=SearchMode.WILDCARD):
	"""Join criteria into an RFC 4515 filter, e.g. (&(givenName=*John*)(sn=*Doe*))

	Returns an empty string when no criteria are given.
	"""
	mode = SearchMode.from_value(mode)
	clauses = [
		"({}={})".format(c.attribute, _wrap(escape_value(c.value), c.is_exact(mode)))
		for c in criteria
	]
	if not clauses:
		return ""
	if len(clauses) == 1:
		return clauses[0]
	return "(&{})".format("".join(clauses))

def build_query(criteria, mode=SearchMode.WILDCARD):
	"""Join criteria into ldap3 Abstraction Layer query text, e.g. 'givenName: *John*, sn: *Doe*'"""
	mode = SearchMode.from_value(mode)
	clauses = [
		"{}: {}".format(c.attribute, _wrap(escape_value(c.value), c.is_exact(mode)))
		for c in criteria
	]
	return ", ".join(clauses)

