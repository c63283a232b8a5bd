#!/usr/bin/env python3
"""
Filter construction and value conversion tests.

Covers the pieces every search goes through before and after the
directory is queried: criteria collection, both filter dialects, FILETIME
conversion and SID normalization.
"""
import base64
import datetime
import logging
import os
import sys
import unittest
from unittest.mock import MagicMock

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from impacket.ldap.ldaptypes import LDAP_SID
from ldap3.abstract.attrDef import AttrDef
from ldap3.abstract.cursor import Reader
from ldap3.abstract.objectDef import ObjectDef

from adsearch.lib.filters import Criterion, SearchMode, collect_criteria, build_ldap_filter, build_query
from adsearch.lib.resolver import LDAP, filetime_to_datetime, normalize_sid
from colortest import ColorTestRunner, green_check, USER_SID, USER_SID_BYTES, ROOT_DN

logging.getLogger().setLevel(logging.CRITICAL)

UTC = datetime.timezone.utc

class FilterBuilderTests(unittest.TestCase):
    def setUp(self):
        self.john_doe = [Criterion("givenName", "John"), Criterion("sn", "Doe")]

    def test_collect_criteria_skips_unset_values(self):
        criteria = collect_criteria([
            ("givenName", "John"),
            ("sn", None),
            ("sAMAccountName", ""),
            ("mail", "   "),
        ])
        self.assertEqual(criteria, [Criterion("givenName", "John")])
        green_check("Unset and blank parameters are omitted")

    def test_collect_criteria_keeps_order_and_exact_attributes(self):
        criteria = collect_criteria([("name", "WS01"), ("IPv4Address", " 10.0.0.5 ")], exact_attributes=["ipv4address"])
        self.assertEqual([c.attribute for c in criteria], ["name", "IPv4Address"])
        self.assertFalse(criteria[0].exact)
        self.assertTrue(criteria[1].exact)
        self.assertEqual(criteria[1].value, "10.0.0.5")

    def test_wildcard_filter(self):
        self.assertEqual(build_ldap_filter(self.john_doe, SearchMode.WILDCARD), "(&(givenName=*John*)(sn=*Doe*))")
        green_check("Wildcard filter wraps values in *")

    def test_exact_filter(self):
        self.assertEqual(build_ldap_filter(self.john_doe, SearchMode.EXACT), "(&(givenName=John)(sn=Doe))")

    def test_single_criterion_has_no_and(self):
        self.assertEqual(build_ldap_filter([Criterion("mail", "jdoe")]), "(mail=*jdoe*)")

    def test_one_clause_per_criterion(self):
        criteria = [Criterion("givenName", "a"), Criterion("sn", "b"), Criterion("sAMAccountName", "c"), Criterion("mail", "d")]
        ldap_filter = build_ldap_filter(criteria)
        self.assertTrue(ldap_filter.startswith("(&("))
        self.assertEqual(ldap_filter.count("="), len(criteria))

        query = build_query(criteria)
        self.assertEqual(len(query.split(", ")), len(criteria))
        self.assertFalse(query.startswith(","))
        self.assertFalse(query.endswith(", "))
        green_check("Exactly one clause per supplied parameter in both dialects")

    def test_empty_criteria_gives_empty_filter(self):
        self.assertEqual(build_ldap_filter([]), "")
        self.assertEqual(build_query([]), "")

    def test_exact_criterion_ignores_wildcard_mode(self):
        criteria = [Criterion("name", "WS"), Criterion("IPv4Address", "192.168.1.5", exact=True)]
        self.assertEqual(build_ldap_filter(criteria, SearchMode.WILDCARD), "(&(name=*WS*)(IPv4Address=192.168.1.5))")
        green_check("IP address criterion stays exact in wildcard mode")

    def test_values_are_escaped(self):
        self.assertEqual(build_ldap_filter([Criterion("cn", "a(b)")], SearchMode.EXACT), "(cn=a\\28b\\29)")

    def test_user_wildcards_are_kept(self):
        self.assertEqual(build_ldap_filter([Criterion("sn", "D*e")]), "(sn=*D*e*)")
        self.assertEqual(build_ldap_filter([Criterion("sn", "*")]), "(sn=*)")

    def test_managed_query(self):
        self.assertEqual(build_query(self.john_doe), "givenName: *John*, sn: *Doe*")
        self.assertEqual(build_query(self.john_doe, SearchMode.EXACT), "givenName: John, sn: Doe")

    def test_managed_query_escapes_separators(self):
        self.assertEqual(build_query([Criterion("cn", "Doe, John")], SearchMode.EXACT), "cn: Doe\\2c John")

    def test_managed_query_escapes_attribute_separator(self):
        self.assertEqual(build_query([Criterion("mail", "a:b@x.com")], SearchMode.EXACT), "mail: a\\3ab@x.com")

    def test_leading_operators_are_escaped(self):
        self.assertEqual(build_query([Criterion("sn", "!Doe")], SearchMode.EXACT), "sn: \\21Doe")
        self.assertEqual(build_ldap_filter([Criterion("sn", "!Doe")], SearchMode.EXACT), "(sn=\\21Doe)")
        self.assertEqual(build_query([Criterion("sn", "~Doe")], SearchMode.EXACT), "sn: \\7eDoe")
        # only the first character can be read as an operator
        self.assertEqual(build_query([Criterion("sn", "Doe!")], SearchMode.EXACT), "sn: Doe!")

    def test_search_mode_from_value(self):
        self.assertIs(SearchMode.from_value(True), SearchMode.EXACT)
        self.assertIs(SearchMode.from_value(False), SearchMode.WILDCARD)
        self.assertIs(SearchMode.from_value(None), SearchMode.WILDCARD)
        self.assertIs(SearchMode.from_value("Exact"), SearchMode.EXACT)
        with self.assertRaises(ValueError):
            SearchMode.from_value("fuzzy")

class QueryDialectTests(unittest.TestCase):
    """The managed query must reach the directory as the same clause the raw filter sends."""
    VALUES = ["a:b@x.com", "!Doe", "=Doe", "<5", ">5", "~Doe", "&Doe", "|Doe", "Doe, John", "Doe;Smith", "a(b)"]

    def reader_filter(self, criterion, mode):
        object_def = ObjectDef('user')
        object_def += AttrDef(criterion.attribute)
        reader = Reader(MagicMock(), object_def, ROOT_DN, query=build_query([criterion], mode))
        reader._create_query_filter()
        return reader.query_filter

    def test_exact_values(self):
        for value in self.VALUES:
            criterion = Criterion("sn", value)
            with self.subTest(value=value):
                raw = build_ldap_filter([criterion], SearchMode.EXACT)
                self.assertEqual(self.reader_filter(criterion, SearchMode.EXACT), f"(&(objectClass=user){raw})")
        green_check("Both dialects produce the same clause for operator characters")

    def test_wildcard_values(self):
        for value in self.VALUES:
            criterion = Criterion("mail", value)
            with self.subTest(value=value):
                raw = build_ldap_filter([criterion], SearchMode.WILDCARD)
                self.assertEqual(self.reader_filter(criterion, SearchMode.WILDCARD), f"(&(objectClass=user){raw})")

class FiletimeTests(unittest.TestCase):
    def test_unset_values(self):
        for value in (None, 0, "0", "", b"", [], ["0"], "never", b"abc", 9223372036854775807, -1):
            self.assertIsNone(filetime_to_datetime(value), value)
        green_check("Empty, zero and non-numeric timestamps map to None")

    def test_unix_epoch(self):
        self.assertEqual(filetime_to_datetime(116444736000000000), datetime.datetime(1970, 1, 1, tzinfo=UTC))

    def test_string_and_list_values(self):
        expected = datetime.datetime(2020, 1, 1, tzinfo=UTC)
        self.assertEqual(filetime_to_datetime("132223104000000000"), expected)
        self.assertEqual(filetime_to_datetime([b"132223104000000000"]), expected)

    def test_formatted_datetime_values(self):
        self.assertIsNone(filetime_to_datetime(datetime.datetime(1601, 1, 1, tzinfo=UTC)))
        self.assertEqual(filetime_to_datetime(datetime.datetime(2021, 5, 1)), datetime.datetime(2021, 5, 1, tzinfo=UTC))

    def test_human_readable_time_diff(self):
        past = datetime.datetime(2020, 1, 1, tzinfo=UTC)
        now = datetime.datetime(2022, 3, 1, tzinfo=UTC)
        self.assertEqual(LDAP.human_readable_time_diff(past, now=now), "2 years, 2 months ago")
        self.assertEqual(LDAP.human_readable_time_diff(now, now=now), "today")

class SidTests(unittest.TestCase):
    def test_raw_bytes(self):
        self.assertEqual(normalize_sid(USER_SID_BYTES), USER_SID)
        self.assertEqual(normalize_sid([USER_SID_BYTES]), USER_SID)

    def test_structured_identifier(self):
        self.assertEqual(normalize_sid(LDAP_SID(data=USER_SID_BYTES)), USER_SID)
        green_check("Structured and raw SIDs normalize to the same string")

    def test_base64_string(self):
        self.assertEqual(normalize_sid(base64.b64encode(USER_SID_BYTES).decode()), USER_SID)

    def test_canonical_string(self):
        self.assertEqual(normalize_sid("s-1-5-32-544"), "S-1-5-32-544")

    def test_unparseable(self):
        self.assertEqual(normalize_sid(None), "")
        self.assertEqual(normalize_sid(""), "")
        self.assertEqual(normalize_sid("not-a-sid"), "")

if __name__ == '__main__':
    unittest.main(testRunner=ColorTestRunner(verbosity=2, title="Filter Tests"))
