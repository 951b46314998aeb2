#! ve/bin/python

import argparse
import functools
import http.server
import importlib
import logging
import pathlib
import sys
import traceback

import watchdog.events
import watchdog.observers

SOURCES = ('blog.py', 'components.py')

class Builder(watchdog.events.FileSystemEventHandler):
	def __init__(self, conf):
		self.conf = conf

	def on_any_event(self, event):
		if event.event_type in ('opened', 'closed', 'closed_no_write'):
			return

		print("Change detected, rebuilding...")
		self.build()

	def build(self, debug=True):
		try:
			import components
			import blog
			importlib.reload(components)
			importlib.reload(blog)
			blog.Blog(self.conf).build()
		except Exception:
			if not debug:
				raise
			traceback.print_exc()

class Reloader(watchdog.events.FileSystemEventHandler):
	def __init__(self, cfg_file, server):
		self.cfg_file = cfg_file
		self.server = server

	def on_any_event(self, event):
		src = str(event.src_path)
		if self.cfg_file in src or src.endswith(SOURCES):
			print("Python change detected, reloading...")
			self.server.shutdown()

class RequestHandler(http.server.SimpleHTTPRequestHandler):
	def translate_path(self, path):
		prefix = self.conf.PATH_PREFIX
		if prefix and (path == prefix or path.startswith(prefix + '/')):
			path = path[len(prefix):] or '/'
		return super().translate_path(path)

def main(cfg_file):
	conf_mod = pathlib.Path(cfg_file).stem
	conf = importlib.import_module(conf_mod)
	importlib.reload(conf)

	builder = Builder(conf)
	builder.build(debug=conf.DEBUG)

	if not conf.DEBUG:
		return False

	RequestHandler.conf = conf
	handler = functools.partial(RequestHandler, directory=conf.PUBLIC_DIR)
	server = http.server.HTTPServer(('', conf.DEBUG_PORT), handler)
	reloader = Reloader(cfg_file, server)

	observer = watchdog.observers.Observer()
	observer.schedule(builder, conf.CONTENT_DIR, recursive=True)
	observer.schedule(builder, conf.TEMPLATE_DIR, recursive=True)
	observer.schedule(builder, conf.ASSETS_DIR, recursive=True)
	observer.schedule(reloader, '.')
	observer.start()

	sys.stderr.write('Serving on port {0} ...\n'.format(conf.DEBUG_PORT))
	server.serve_forever()
	server.server_close()
	observer.stop()
	observer.join()

	return True

if __name__ == '__main__':
	arg_parser = argparse.ArgumentParser(description='build this site')
	arg_parser.add_argument('config',
		metavar='CONFIG',
		type=str)
	arg_parser.add_argument('-v', '--verbose',
		action='store_true',
		help='log every rendered page')
	args = arg_parser.parse_args()

	logging.basicConfig(
		level=logging.DEBUG if args.verbose else logging.INFO,
		format='%(levelname)s %(name)s: %(message)s')

	while main(args.config):
		pass
