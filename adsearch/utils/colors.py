class bcolors:
	OKBLUE = '\033[94m'
	OKCYAN = '\033[96m'
	OKGREEN = '\033[92m'
	WARNING = '\033[93m'
	ENDC = '\033[0m'
	BOLD = '\033[1m'
	GREY = '\033[2;37m'
