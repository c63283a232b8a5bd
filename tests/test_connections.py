#!/usr/bin/env python3
"""
Connection setup tests.

ldap3.Server and ldap3.Connection are replaced with MagicMock so the
keyword arguments CONNECTION hands them can be checked without a DC.
"""
import logging
import os
import sys
import unittest
from types import SimpleNamespace
from unittest.mock import patch, MagicMock

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

import ldap3

from adsearch.utils.connections import CONNECTION
from colortest import ColorTestRunner, green_check, ROOT_DN

logging.getLogger().setLevel(logging.CRITICAL)

NTHASH = "8846F7EAEE8FB117AD06BDD830B7586C"
LMHASH = "AAD3B435B51404EEAAD3B435B51404EE"

def make_args(**overrides):
    args = dict(
        username="jdoe",
        password="Passw0rd!",
        domain="apac.excalibur.local",
        lmhash="",
        nthash="",
        hashes=None,
        use_simple_auth=False,
        use_ldap=False,
        use_ldaps=False,
        use_gc=False,
        use_gc_ldaps=False,
        port=None,
        stack_trace=False,
        nameserver=None,
        use_system_ns=False,
        dns_timeout=3,
        dns_tcp=False,
        ldap_address="10.0.0.10",
    )
    args.update(overrides)
    return SimpleNamespace(**args)

class ConnectionTests(unittest.TestCase):
    def setUp(self):
        patchers = [
            patch('ldap3.Server'),
            patch('ldap3.Connection'),
            patch('ldap3.Tls'),
            patch('adsearch.utils.connections.md4_available', return_value=True),
            patch('adsearch.utils.connections.load_md4_shim'),
        ]
        self.server_cls, self.connection_cls, self.tls_cls, self.md4_available, self.load_md4_shim = [p.start() for p in patchers]
        for p in patchers:
            self.addCleanup(p.stop)
        self.server_cls.return_value.info.other = {"defaultNamingContext": [ROOT_DN]}

    def server_kwargs(self, index=-1):
        return self.server_cls.call_args_list[index][1]

    def connection_kwargs(self):
        return self.connection_cls.call_args[1]

    def test_ldaps_by_default(self):
        conn = CONNECTION(make_args())
        conn.init_ldap_session()
        kwargs = self.server_kwargs()
        self.assertEqual(kwargs["host"], "10.0.0.10")
        self.assertEqual(kwargs["port"], 636)
        self.assertTrue(kwargs["use_ssl"])
        self.assertIs(kwargs["tls"], self.tls_cls.return_value)
        self.assertEqual(kwargs["get_info"], ldap3.ALL)
        self.assertEqual(kwargs["mode"], ldap3.IP_V4_PREFERRED)
        self.assertEqual(conn.get_proto(), "LDAPS")
        self.assertEqual(conn.get_root_dn(), ROOT_DN)
        green_check("LDAPS on 636 unless another protocol is asked for")

    def test_default_ports(self):
        cases = [
            ({"use_ldap": True}, 389, False, "LDAP"),
            ({"use_gc": True}, 3268, False, "GC"),
            ({"use_gc_ldaps": True}, 3269, True, "GCssl"),
        ]
        for overrides, port, use_ssl, proto in cases:
            with self.subTest(proto=proto):
                conn = CONNECTION(make_args(**overrides))
                conn.init_ldap_session()
                self.assertEqual(self.server_kwargs()["port"], port)
                self.assertEqual(self.server_kwargs()["use_ssl"], use_ssl)
                self.assertEqual(conn.get_proto(), proto)

    def test_port_override(self):
        CONNECTION(make_args(port=1636)).init_ldap_session()
        self.assertEqual(self.server_kwargs()["port"], 1636)
        CONNECTION(make_args(use_ldap=True, port=1389)).init_ldap_session()
        self.assertEqual(self.server_kwargs()["port"], 1389)

    def test_ldaps_falls_back_to_ldap(self):
        self.connection_cls.return_value.bind.side_effect = [ldap3.core.exceptions.LDAPSocketOpenError("socket ssl wrapping error"), True]
        conn = CONNECTION(make_args())
        conn.init_ldap_session()
        self.assertEqual(self.server_kwargs(0)["port"], 636)
        self.assertEqual(self.server_kwargs(1)["port"], 389)
        self.assertFalse(self.server_kwargs(1)["use_ssl"])
        self.assertEqual(conn.get_proto(), "LDAP")
        green_check("Failed TLS bind retried over plain LDAP")

    def test_gc_ssl_falls_back_to_gc(self):
        self.connection_cls.return_value.bind.side_effect = [ConnectionResetError(), True]
        conn = CONNECTION(make_args(use_gc_ldaps=True))
        conn.init_ldap_session()
        self.assertEqual(self.server_kwargs(0)["port"], 3269)
        self.assertEqual(self.server_kwargs(1)["port"], 3268)
        self.assertEqual(conn.get_proto(), "GC")

    def test_ntlm_bind(self):
        CONNECTION(make_args(domain="APAC")).init_ldap_session()
        kwargs = self.connection_kwargs()
        self.assertEqual(kwargs["user"], "APAC\\jdoe")
        self.assertEqual(kwargs["password"], "Passw0rd!")
        self.assertEqual(kwargs["authentication"], ldap3.NTLM)
        self.assertTrue(kwargs["raise_exceptions"])

    def test_flat_domain_refreshed_from_naming_context(self):
        conn = CONNECTION(make_args(domain="APAC"))
        conn.init_ldap_session()
        self.assertEqual(conn.get_domain(), "apac.excalibur.local")

    def test_simple_bind(self):
        CONNECTION(make_args(use_simple_auth=True)).init_ldap_session()
        kwargs = self.connection_kwargs()
        self.assertEqual(kwargs["user"], "jdoe@apac.excalibur.local")
        self.assertEqual(kwargs["authentication"], ldap3.SIMPLE)

    def test_hash_bind(self):
        args = make_args(password="", hashes=f"{LMHASH}:{NTHASH}", lmhash=LMHASH, nthash=NTHASH)
        CONNECTION(args).init_ldap_session()
        self.assertEqual(self.connection_kwargs()["password"], f"{LMHASH}:{NTHASH}")
        green_check("-H hashes are sent as LM:NT")

    def test_md4_shim_loaded_before_ntlm_bind(self):
        self.md4_available.return_value = False
        self.load_md4_shim.side_effect = lambda: self.connection_cls.assert_not_called()
        CONNECTION(make_args()).init_ldap_session()
        self.load_md4_shim.assert_called_once_with()
        self.connection_cls.assert_called_once()

    def test_md4_shim_not_needed_for_simple_bind(self):
        self.md4_available.return_value = False
        CONNECTION(make_args(use_simple_auth=True)).init_ldap_session()
        self.load_md4_shim.assert_not_called()

    def test_invalid_credentials_exit(self):
        self.connection_cls.return_value.bind.side_effect = ldap3.core.exceptions.LDAPInvalidCredentialsResult()
        with self.assertRaises(SystemExit):
            CONNECTION(make_args()).init_ldap_session()

class NameserverTests(unittest.TestCase):
    @patch('adsearch.utils.connections.NameResolver')
    def test_dc_address_is_default_nameserver(self, resolver_cls):
        conn = CONNECTION(make_args())
        self.assertEqual(conn.get_nameserver(), "10.0.0.10")
        resolver_cls.assert_called_once_with(nameserver="10.0.0.10", use_system_ns=False, timeout=3, tcp=False)
        self.assertIs(conn.get_resolver(), resolver_cls.return_value)
        resolver_cls.return_value.resolve_host.assert_not_called()

    @patch('adsearch.utils.connections.NameResolver')
    def test_fqdn_target_resolved_with_nameserver(self, resolver_cls):
        resolver_cls.return_value.resolve_host.return_value = "10.0.0.10"
        conn = CONNECTION(make_args(ldap_address="dc01.apac.excalibur.local", nameserver="10.0.0.1", dns_tcp=True))
        resolver_cls.assert_called_once_with(nameserver="10.0.0.1", use_system_ns=False, timeout=3, tcp=True)
        resolver_cls.return_value.resolve_host.assert_called_once_with("dc01.apac.excalibur.local")
        self.assertEqual(conn.get_ldap_address(), "10.0.0.10")
        green_check("FQDN target resolved through the configured nameserver")

    @patch('adsearch.utils.connections.NameResolver')
    def test_unresolvable_target_exits(self, resolver_cls):
        resolver_cls.return_value.resolve_host.return_value = None
        with self.assertRaises(SystemExit):
            CONNECTION(make_args(ldap_address="dc01.apac.excalibur.local"))

    @patch('adsearch.utils.connections.NameResolver')
    def test_hostname_nameserver_ignored(self, resolver_cls):
        resolver_cls.return_value.resolve_host.return_value = "10.0.0.10"
        conn = CONNECTION(make_args(ldap_address="dc01.apac.excalibur.local", nameserver="ns.excalibur.local"))
        self.assertIsNone(conn.get_nameserver())

if __name__ == '__main__':
    unittest.main(testRunner=ColorTestRunner(verbosity=2, title="Connection Tests"))
