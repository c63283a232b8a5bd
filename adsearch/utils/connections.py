#!/usr/bin/env python3
import logging
import ssl
import sys

import ldap3

from adsearch.lib.compat import md4_available, load_md4_shim
from adsearch.lib.naming import NameResolver
from adsearch.utils.helpers import dn2domain, is_ipaddress, is_valid_fqdn

class CONNECTION:
	def __init__(self, args):
		self.args = args
		self.username = args.username
		self.password = args.password
		self.domain = args.domain
		self.lmhash = args.lmhash
		self.nthash = args.nthash
		self.hashes = args.hashes
		self.use_simple_auth = args.use_simple_auth
		self.use_ldap = args.use_ldap
		self.use_ldaps = args.use_ldaps
		self.use_gc = args.use_gc
		self.use_gc_ldaps = args.use_gc_ldaps
		self.port = args.port
		self.proto = None
		self.stack_trace = args.stack_trace

		# LDAPS unless told otherwise
		if not (self.use_ldap or self.use_gc or self.use_gc_ldaps):
			self.use_ldaps = True

		if args.nameserver is None and is_ipaddress(args.ldap_address):
			logging.debug(f"Using {args.ldap_address} as nameserver")
			self.nameserver = args.ldap_address
		elif args.nameserver and is_ipaddress(args.nameserver):
			self.nameserver = args.nameserver
		else:
			self.nameserver = None
		self.use_system_ns = args.use_system_ns
		self.resolver = NameResolver(
			nameserver=self.nameserver,
			use_system_ns=self.use_system_ns,
			timeout=args.dns_timeout,
			tcp=args.dns_tcp
		)

		self.auth_method = ldap3.NTLM
		if self.use_simple_auth:
			self.auth_method = ldap3.SIMPLE

		if is_valid_fqdn(args.ldap_address):
			_ldap_address = self.resolver.resolve_host(args.ldap_address)
			if not _ldap_address:
				logging.error("Couldn't resolve %s" % args.ldap_address)
				sys.exit(0)
			self.ldap_address = _ldap_address
		else:
			self.ldap_address = args.ldap_address

		self.ldap_server = None
		self.ldap_session = None

	def get_domain(self):
		return self.domain

	def get_username(self):
		return self.username

	def get_ldap_address(self):
		return self.ldap_address

	def get_nameserver(self):
		return self.nameserver

	def get_resolver(self):
		return self.resolver

	def get_proto(self):
		return self.proto

	def set_proto(self, proto):
		proto = proto.lower()
		self.use_ldap = proto == "ldap"
		self.use_ldaps = proto == "ldaps"
		self.use_gc = proto == "gc"
		self.use_gc_ldaps = proto == "gc_ldaps"

	def get_root_dn(self):
		if not self.ldap_server or not self.ldap_server.info:
			return None
		return self.ldap_server.info.other["defaultNamingContext"][0]

	def refresh_domain(self):
		root_dn = self.get_root_dn()
		if root_dn:
			self.domain = dn2domain(root_dn)

	def who_am_i(self):
		try:
			whoami = self.ldap_session.extend.standard.who_am_i()
			if whoami:
				whoami = whoami.split(":")[-1]
		except ldap3.core.exceptions.LDAPException:
			whoami = "%s\\%s" % (self.get_domain(), self.get_username())
		return whoami if whoami else "ANONYMOUS"

	def init_ldap_session(self):
		target = self.ldap_address or self.domain

		if self.use_ldaps or self.use_gc_ldaps:
			tls = ldap3.Tls(
				validate=ssl.CERT_NONE,
				version=ssl.PROTOCOL_TLSv1_2,
				ciphers='ALL:@SECLEVEL=0',
			)
			try:
				self.ldap_server, self.ldap_session = self.init_ldap_connection(target, tls)
			except (ldap3.core.exceptions.LDAPSocketOpenError, ConnectionResetError) as e:
				logging.debug(f"TLS connection failed ({e})")
				if self.use_ldaps:
					logging.debug('Error bind to LDAPS, trying LDAP')
					self.set_proto("ldap")
				else:
					logging.debug('Error bind to GC ssl, trying GC')
					self.set_proto("gc")
				return self.init_ldap_session()
		else:
			self.ldap_server, self.ldap_session = self.init_ldap_connection(target, None)

		if not self.domain or not is_valid_fqdn(self.domain):
			self.refresh_domain()

		return self.ldap_server, self.ldap_session

	def init_ldap_connection(self, target, tls):
		ldap_server_kwargs = {
			"host": target,
			"get_info": ldap3.ALL,
			"allowed_referral_hosts": [('*', True)],
			"mode": ldap3.IP_V4_PREFERRED,
		}

		if tls:
			ldap_server_kwargs["tls"] = tls
			ldap_server_kwargs["use_ssl"] = True
			if self.use_gc_ldaps:
				self.proto = "GCssl"
				ldap_server_kwargs["port"] = 3269 if not self.port else self.port
			else:
				self.proto = "LDAPS"
				ldap_server_kwargs["port"] = 636 if not self.port else self.port
		else:
			ldap_server_kwargs["use_ssl"] = False
			if self.use_gc:
				self.proto = "GC"
				ldap_server_kwargs["port"] = 3268 if not self.port else self.port
			else:
				self.proto = "LDAP"
				ldap_server_kwargs["port"] = 389 if not self.port else self.port

		ldap_server = ldap3.Server(**ldap_server_kwargs)

		if self.auth_method == ldap3.NTLM:
			user = '%s\\%s' % (self.domain, self.username)
			if not md4_available():
				load_md4_shim()
		else:
			user = '{}@{}'.format(self.username, self.domain)

		ldap_connection_kwargs = {
			"user": user,
			"raise_exceptions": True,
			"authentication": self.auth_method
		}
		if self.hashes is not None:
			ldap_connection_kwargs["password"] = '{}:{}'.format(self.lmhash, self.nthash)
		elif self.password is not None:
			ldap_connection_kwargs["password"] = self.password

		logging.debug("Authentication: {}, User: {}".format(self.auth_method, user))
		logging.debug("Connecting to %s, Port: %s, SSL: %s" % (ldap_server_kwargs["host"], ldap_server_kwargs["port"], ldap_server_kwargs["use_ssl"]))

		ldap_session = ldap3.Connection(ldap_server, **ldap_connection_kwargs)
		try:
			ldap_session.bind()
		except ldap3.core.exceptions.LDAPInvalidCredentialsResult:
			logging.error("Bind not successful - invalid credentials")
			logging.debug("%s" % (ldap_session.result.get('message')))
			sys.exit(0)
		except ldap3.core.exceptions.LDAPStrongerAuthRequiredResult:
			logging.error("LDAP signing is enforced, use --use-ldaps")
			sys.exit(0)

		logging.debug("Bind SUCCESS!")
		return ldap_server, ldap_session

	def reset_connection(self):
		try:
			self.ldap_session.rebind()
		except ldap3.core.exceptions.LDAPException as e:
			logging.error(f"Error during reconnection: {str(e)}")
			return False
		logging.info("LDAP reconnection successful")
		return True

	def close(self):
		if self.ldap_session and self.ldap_session.bound:
			self.ldap_session.unbind()
		self.ldap_session = None
