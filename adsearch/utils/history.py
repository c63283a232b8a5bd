from sys import platform
if platform == "linux" or platform == "linux2":
	import gnureadline as readline
else:
	import readline

def get_shell_history(last, unique=False):
	'''return the last x number of {,unique} shell history, newest first'''
	hist_len = readline.get_current_history_length()
	items = []
	cursor = hist_len
	while len(items) < last and cursor >= 1:
		item = readline.get_history_item(cursor)
		cursor -= 1
		if item is None or (unique and item in items):
			continue
		items.append(item)
	return items
