import os
from setuptools import setup

# adsearch/__init__.py pulls in ldap3, read the version module on its own
version = {}
with open(os.path.join(os.path.dirname(os.path.abspath(__file__)), 'adsearch', '_version.py')) as f:
	exec(f.read(), version)
__version__ = version['__version__']

setup(
	name='adsearch',
	version=__version__,
	description='Simplified Active Directory user and computer search',
	long_description=open('README.md').read(),
	long_description_content_type='text/markdown',
	packages=[
		'adsearch',
		'adsearch.lib',
		'adsearch.utils',
	],
	license='MIT',
	python_requires='>=3.9',
	install_requires=[
		'impacket',
		'ldap3',
		'dnspython',
		'gnureadline; sys_platform == "linux"',
		'validators',
		'tabulate',
		'python-dateutil',
		'pycryptodomex',
	],
	extras_require={
		'test': ['pytest'],
	},
	classifiers=[
		'Intended Audience :: Information Technology',
		'License :: OSI Approved :: MIT License',
		'Programming Language :: Python :: 3.9',
		'Programming Language :: Python :: 3.10',
		'Programming Language :: Python :: 3.11',
		'Programming Language :: Python :: 3.12',
	],
	entry_points= {
		'console_scripts': ['adsearch=adsearch:main']
	}
)
