import logging

import dns.exception
import dns.resolver
import dns.reversename
from dns import resolver

from adsearch.utils.helpers import is_ipaddress, is_ipv4address

class NameResolver:
	"""Forward and reverse host lookups against a chosen DNS server.

	nameserver is typically the domain controller. With use_system_ns
	(or no nameserver at all) the host's resolv.conf is used instead.
	"""
	def __init__(self, nameserver=None, use_system_ns=False, timeout=3, tcp=False):
		self.nameserver = nameserver
		self.use_system_ns = use_system_ns
		self.timeout = float(timeout)
		self.tcp = tcp

	def _get_resolver(self):
		if self.nameserver and not self.use_system_ns:
			dnsresolver = resolver.Resolver(configure=False)
			dnsresolver.nameservers = [self.nameserver]
		else:
			dnsresolver = resolver.Resolver()
		dnsresolver.lifetime = self.timeout
		return dnsresolver

	def resolve_host(self, hostname):
		"""Return the first IPv4 address of hostname, or None if it cannot be resolved."""
		if not hostname:
			return None
		hostname = str(hostname).strip().rstrip('.')
		if is_ipv4address(hostname):
			return hostname

		try:
			answer = self._get_resolver().resolve(hostname, 'A', tcp=self.tcp)
		except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer, dns.resolver.NoNameservers, dns.exception.Timeout) as e:
			logging.debug(f"[NameResolver] Failed to resolve {hostname}: {e}")
			return None
		except dns.exception.DNSException as e:
			logging.debug(f"[NameResolver] DNS error while resolving {hostname}: {e}")
			return None

		for record in answer:
			logging.debug(f"[NameResolver] Resolved {hostname} to {record.address}")
			return record.address
		return None

	def resolve_address(self, address):
		"""Return the host name behind address (PTR lookup), or None."""
		if not address or not is_ipaddress(address):
			return None

		try:
			rev_name = dns.reversename.from_address(address)
			answer = self._get_resolver().resolve(rev_name, 'PTR', tcp=self.tcp)
		except dns.exception.DNSException as e:
			logging.debug(f"[NameResolver] Reverse DNS lookup failed for {address}: {e}")
			return None

		for record in answer:
			hostname = str(record).rstrip('.')
			logging.debug(f"[NameResolver] Reverse resolved {address} to {hostname}")
			return hostname
		return None
