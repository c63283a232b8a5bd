import base64
import binascii
import datetime
import logging
from dateutil.relativedelta import relativedelta

from ldap3.protocol.formatters.formatters import format_sid

FILETIME_EPOCH = datetime.datetime(1601, 1, 1, tzinfo=datetime.timezone.utc)
# 0x7FFFFFFFFFFFFFFF, used by AD for "never"
FILETIME_NEVER = 9223372036854775807

def _first(value):
	if isinstance(value, (list, tuple)):
		return value[0] if value else None
	return value

class LDAP:
	@staticmethod
	def filetime_to_datetime(value):
		"""Convert a Windows FILETIME (100ns intervals since 1601-01-01 UTC) to a datetime.

		Accepts int, numeric str/bytes, an already formatted datetime or a
		single-item list of those. Returns None for unset values: empty,
		zero, non-numeric, the "never" sentinel or the 1601 epoch itself.
		"""
		value = _first(value)
		if value is None:
			return None

		if isinstance(value, datetime.datetime):
			if value.tzinfo is None:
				value = value.replace(tzinfo=datetime.timezone.utc)
			if value <= FILETIME_EPOCH or value.year >= 9999:
				return None
			return value

		if isinstance(value, bytes):
			value = value.decode(errors='ignore')

		try:
			ticks = int(str(value).strip())
		except ValueError:
			logging.debug(f"[Resolver] Ignoring non-numeric timestamp: {value!r}")
			return None

		if ticks <= 0 or ticks >= FILETIME_NEVER:
			return None

		try:
			return FILETIME_EPOCH + datetime.timedelta(microseconds=ticks // 10)
		except OverflowError:
			return None

	@staticmethod
	def human_readable_time_diff(past_date, now=None):
		if now is None:
			now = datetime.datetime.now(tz=past_date.tzinfo)
		diff = relativedelta(now, past_date)

		if diff.years > 0:
			return f"{diff.years} year{'s' if diff.years > 1 else ''}, {diff.months} month{'s' if diff.months > 1 else ''} ago"
		elif diff.months > 0:
			return f"{diff.months} month{'s' if diff.months > 1 else ''}, {diff.days} day{'s' if diff.days > 1 else ''} ago"
		elif diff.days > 0:
			return f"{diff.days} day{'s' if diff.days > 1 else ''} ago"
		else:
			return "today"

	@staticmethod
	def format_datetime(dt):
		if not dt:
			return ""
		return f"{dt.strftime('%d/%m/%Y %H:%M:%S')} ({LDAP.human_readable_time_diff(dt)})"

	@staticmethod
	def bin_to_sid(sid):
		sid = format_sid(sid)
		if isinstance(sid, str) and sid.startswith('S-'):
			return sid
		return ""

	@staticmethod
	def normalize_sid(value):
		"""Return the canonical S-1-... string for any SID representation.

		Handles structured identifiers (impacket LDAP_SID or anything with
		formatCanonical()), raw binary, base64 text and canonical strings.
		Unparseable values give an empty string.
		"""
		value = _first(value)
		if value is None:
			return ""

		if hasattr(value, "formatCanonical"):
			return value.formatCanonical()

		if isinstance(value, (bytes, bytearray)):
			value = bytes(value)
			if value.upper().startswith(b'S-1-'):
				return value.decode()
			return LDAP.bin_to_sid(value)

		value = str(value).strip()
		if not value:
			return ""
		if value.upper().startswith('S-1-'):
			return value.upper()

		try:
			raw = base64.b64decode(value, validate=True)
		except (binascii.Error, ValueError):
			logging.debug(f"[Resolver] Unrecognized SID value: {value!r}")
			return ""
		# revision 1, at least the identifier authority present
		if len(raw) >= 8 and raw[0] == 1:
			return LDAP.bin_to_sid(raw)
		return ""

filetime_to_datetime = LDAP.filetime_to_datetime
normalize_sid = LDAP.normalize_sid
