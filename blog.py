import datetime
import logging
import multiprocessing
import multiprocessing.managers
import os
import pathlib
import re
import shutil
import signal
import subprocess

import frontmatter
import jinja2
import markdown
import markupsafe
import webassets

import components

log = logging.getLogger(__name__)

MORE = '<!-- more -->'
PARAGRAPH = re.compile(r'<p>(.*?)</p>', re.S)

MD_EXTENSIONS = [
	'fenced_code',
	'tables',
]

# Workers need the parent's jinja environment and page index, neither of
# which survive pickling, so they are inherited across fork instead
_mp = multiprocessing.get_context('fork')

# Only set from pool processes
_globals = None

class Globals(object):
	jinja = None
	unused_content = None

class Blog(object):
	def __init__(self, conf):
		self.conf = self._conf_dict(conf)
		self.conf.setdefault('PATH_PREFIX', '')
		self.conf['SITE_METADATA'] = _site_metadata(self.conf.get('SITE_METADATA'))

	def build(self):
		assets_cache = self.conf['CACHE_DIR'] + '/webassets'
		_makedirs(assets_cache)

		assets_dir = self.conf['PUBLIC_DIR'] + '/assets'
		_makedirs(assets_dir)

		filters = []
		if not self.conf['DEBUG']:
			filters = ['cssmin']

		assets = webassets.Environment(
			assets_dir, self.conf['PATH_PREFIX'] + '/assets',
			load_path=(self.conf['ASSETS_DIR'], ),
			cache=assets_cache)

		if self.conf.get('CSS'):
			assets.register('css', webassets.Bundle(
				*self.conf['CSS'],
				filters=filters,
				output='all.css'))

		manager = SetManager(ctx=_mp)
		manager.start()

		try:
			self.cpus = multiprocessing.cpu_count()
			self.gs = Globals()
			self.gs.jinja = Jinja.init(self.conf, assets)
			self.gs.unused_content = manager.set()

			self._load_public()

			# Build the assets before running templates, or each subprocess
			# tries to build them independently
			for bundle in assets:
				bundle.urls()
				_mark_used(os.path.join(assets_dir, bundle.output), gs=self.gs)

			with self.pool() as pool:
				_wait(self._load(pool))
				pool.close()
				pool.join()

			self.pages.sort()
			self.gs.jinja.globals.update({
				'conf': self.conf,
				'pages': self.pages,
			})

			jobs = []
			with self.pool() as pool:
				for page in self.pages.iter():
					jobs.append(pool.apply_async(page.build))

				for blob in self.blobs:
					jobs.append(pool.apply_async(_copy_blob, (self.conf, blob, )))

				pool.close()
				_wait(jobs)
				pool.join()

			log.info('built %d pages, %d posts, %d files',
				len(self.pages.pages),
				len(self.pages.posts()),
				len(self.blobs))

			self._clean_unused()
		finally:
			manager.shutdown()

	def pool(self):
		return _mp.Pool(self.cpus, self._winit)

	def _conf_dict(self, conf):
		d = {}
		for k in dir(conf):
			if k.startswith('_') or k.upper() != k:
				continue
			d[k] = getattr(conf, k)
		return d

	def _winit(self):
		signal.signal(signal.SIGINT, signal.SIG_IGN)

		global _globals
		_globals = self.gs

	def _load_public(self):
		uuc = set()
		path = pathlib.Path(self.conf['PUBLIC_DIR'])
		for f in path.glob('**/*'):
			uuc.add(os.path.normpath(str(f)))

		# Bulk update after reading, it's faster
		self.gs.unused_content.update(uuc)

	def _load(self, pool):
		pages = self.pages = Pages()
		self.blobs = []

		jobs = []
		path = pathlib.Path(self.conf['CONTENT_DIR'])
		for f in sorted(path.glob('**/*')):
			if f.suffix == '.j2':
				jobs.append(pool.apply_async(
					_load_page,
					(self.conf, f, ),
					callback=pages.add))
			elif f.suffix == '.md':
				jobs.append(pool.apply_async(
					_load_post,
					(self.conf, f, ),
					callback=pages.add))
			elif f.is_file():
				self.blobs.append(f)

		return jobs

	def _clean_unused(self):
		# Sorted in reverse, this should make sure that any empty directories
		# are removed recursively
		for k in sorted(self.gs.unused_content.copy(), reverse=True):
			if os.path.isfile(k):
				log.debug('removing stale %s', k)
				os.unlink(k)
			else:
				try:
					os.rmdir(k)
				except OSError:
					pass

class SetManager(multiprocessing.managers.BaseManager):
	pass
SetManager.register('set', set)

class Pages(object):
	def __init__(self):
		self.pages = []
		self.cats = {}

	def add(self, page):
		if isinstance(page, Post):
			cat = self.cats.setdefault(page.category, [])
			cat.append(page)
		else:
			self.pages.append(page)

	def sort(self):
		self.pages.sort(key=lambda p: str(p.src))

		for posts in self.cats.values():
			posts.sort(key=lambda p: (p.date, str(p.src)), reverse=True)

			# Neighbours are kept as (title, url) so a post never pickles its
			# whole category along with it
			for newer, older in zip(posts, posts[1:]):
				newer.previous = (older.title, older.abs_url)
				older.next = (newer.title, newer.abs_url)

	def posts(self, cat=None):
		if cat:
			return list(self.cats.get(cat, []))

		posts = []
		for cat in self.cats.values():
			posts += cat

		posts.sort(key=lambda p: (p.date, str(p.src)), reverse=True)

		return posts

	def iter(self):
		for page in self.pages:
			yield page

		for cat in self.cats.values():
			for post in cat:
				yield post

class Page(object):
	def __init__(self, conf, file, fm):
		self.src = file
		self.conf = conf
		self.tmpl_content = fm.content
		self.metadata = fm.metadata
		self.template = self.metadata.get('template')

		self.title = self.metadata.get('title', '')
		self.description = self.metadata.get('description', '')

		self.name, self.category, self.dst, self.date = _determine_dest(
			conf, file,
			is_page=True,
			dst_name=self.metadata.get('dst'))

		self.abs_url = _abs_url(conf, self.dst)

	def render(self, jinja):
		if self.template:
			tmpl = jinja.get_template(self.template)
		else:
			tmpl = jinja.from_string(self.tmpl_content)

		return tmpl.render(
			conf=self.conf,
			page=self)

	def build(self):
		try:
			content = self.render(_globals.jinja)

			dst = self.dst
			_makedirs(dst)
			with dst.open('w') as f:
				f.write(content)

			if not self.conf['DEBUG']:
				# From: https://github.com/tdewolff/minify/tree/master/cmd/minify
				status = subprocess.call([
					'minify',
					'-o', str(dst),
					str(dst)])
				if status:
					raise Exception('failed to minify %s' % self.src)

			_mark_used(dst)
			log.debug('rendered %s -> %s', self.src, dst)

			return self.abs_url

		except Exception as e:
			# Wrap all exceptions: there are issues with pickling and custom
			# exceptions from jinja
			raise Exception('in %s: %s' % (self.src, str(e)))

class Post(Page):
	def __init__(self, conf, file, fm):
		super().__init__(conf, file, fm)

		if 'date' in self.metadata:
			self.date = _to_datetime(self.metadata['date'])
		if not self.date:
			raise Exception('post is missing a date')

		if not self.template:
			self.template = 'post.j2'

		self.html = markupsafe.Markup(markdown.markdown(
			self.tmpl_content,
			extensions=MD_EXTENSIONS))
		self.excerpt = markupsafe.escape(self.description or '') or _excerpt(self.html)

		self.previous = None
		self.next = None

class Jinja(object):
	def init(conf, assets):
		jinja = jinja2.Environment(
			loader=jinja2.FileSystemLoader(conf['TEMPLATE_DIR']),
			extensions=[
				'webassets.ext.jinja2.AssetsExtension',
			])
		jinja.filters['markdown'] = Jinja._filter_markdown
		jinja.assets_environment = assets

		jinja.globals['url'] = Jinja._url
		components.register(jinja, conf)

		return jinja

	def _filter_markdown(text):
		return markupsafe.Markup(markdown.markdown(text, extensions=MD_EXTENSIONS))

	@jinja2.pass_context
	def _url(ctx, path):
		return ctx['conf']['PATH_PREFIX'] + '/' + path.lstrip('/')

def _site_metadata(metadata):
	# Every field is optional; templates only ever see the nested mappings
	metadata = dict(metadata or {})
	metadata['author'] = metadata.get('author') or {}
	metadata['social'] = metadata.get('social') or {}

	return metadata

def _parse_datetime(dir):
	date = datetime.datetime.strptime(
		dir[:10],
		'%Y-%m-%d')
	dir = dir[11:]

	return date, dir

def _strip_date(part):
	try:
		return _parse_datetime(part)[1]
	except ValueError:
		return part

def _to_datetime(val):
	if isinstance(val, datetime.datetime):
		return val
	if isinstance(val, datetime.date):
		return datetime.datetime.combine(val, datetime.time())

	return datetime.datetime.strptime(str(val), '%Y-%m-%d')

def _determine_dest(conf, file, is_page=False, dst_name=None):
	parts = file.relative_to(conf['CONTENT_DIR']).parts
	dirs = [_strip_date(p) for p in parts[:-1]]

	if not is_page:
		return file.stem, '/'.join(dirs), pathlib.Path(conf['PUBLIC_DIR'], *dirs, file.name), None

	# A page in its own dir is named after the dir
	parts = parts[:-1]
	name = file.stem
	if name == 'index' and parts:
		name = parts[-1]
		parts = parts[:-1]
		dirs = dirs[:-1]

	try:
		date, name = _parse_datetime(name)
	except ValueError:
		date = None

	category = '/'.join(parts)

	if dst_name:
		dst = pathlib.Path(conf['PUBLIC_DIR'], *dirs, dst_name)
	elif name == 'index':
		dst = pathlib.Path(conf['PUBLIC_DIR'], *dirs, 'index.html')
	else:
		dst = pathlib.Path(conf['PUBLIC_DIR'], *dirs, name, 'index.html')

	return name, category, dst, date

def _abs_url(conf, dst):
	rel = dst.relative_to(conf['PUBLIC_DIR'])

	if rel.name != 'index.html':
		return conf['PATH_PREFIX'] + '/' + rel.as_posix()

	url = '/'.join(rel.parent.parts)
	if url:
		url += '/'

	return conf['PATH_PREFIX'] + '/' + url

def _excerpt(html):
	more = html.find(MORE)
	if more >= 0:
		return markupsafe.escape(markupsafe.Markup(html[:more]).striptags())

	match = PARAGRAPH.search(html)
	if not match:
		return ''

	return markupsafe.escape(markupsafe.Markup(match.group(1)).striptags())

def _load_page(conf, file):
	try:
		return Page(conf, file, frontmatter.load(str(file)))
	except Exception as e:
		raise Exception('in %s: %s' % (file, str(e)))

def _load_post(conf, file):
	try:
		return Post(conf, file, frontmatter.load(str(file)))
	except Exception as e:
		raise Exception('in %s: %s' % (file, str(e)))

def _copy_blob(conf, file):
	_, _, dst, _ = _determine_dest(conf, file)
	_makedirs(dst)
	_mark_used(dst)

	if _src_changed(file, dst):
		shutil.copyfile(str(file), str(dst))
		shutil.copystat(str(file), str(dst))

	return str(dst)

def _mark_used(dst, gs=None):
	if not gs:
		gs = _globals

	if gs:
		dst = os.path.normpath(str(dst))
		gs.unused_content.discard(dst)

def _src_changed(src, dst):
	try:
		srcs = src.stat()
		dsts = dst.stat()
		if srcs.st_mtime == dsts.st_mtime:
			return False
	except FileNotFoundError:
		pass

	return True

def _makedirs(dst):
	if isinstance(dst, pathlib.Path):
		dst = str(dst.parent)

	os.makedirs(dst, exist_ok=True)

def _wait(jobs):
	for job in jobs:
		job.get()
