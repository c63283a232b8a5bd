import datetime

__year__ = datetime.date.today().year
__version__ = f"{__year__}.1.0"
__author__ = [
	"adsearch contributors"
]

BANNER = "adsearch v{} ({}) - by {}\n".format(__version__, __year__, ", ".join(__author__))
