import os
import pathlib
import types

import pytest
import watchdog.events

import build

class FakeServer:
	def __init__(self):
		self.shutdowns = 0

	def shutdown(self):
		self.shutdowns += 1

class TestBuilder:
	def test_builds_site(self, site):
		build.Builder(site).build(debug=False)
		assert pathlib.Path(site.PUBLIC_DIR, 'index.html').exists()

	def test_failure_propagates_outside_debug(self, site):
		del site.CONTENT_DIR

		with pytest.raises(KeyError):
			build.Builder(site).build(debug=False)

	def test_failure_is_printed_in_debug(self, site, capsys):
		del site.CONTENT_DIR

		build.Builder(site).build(debug=True)

		assert 'KeyError' in capsys.readouterr().err

	def test_rebuilds_on_change(self, site, capsys):
		builder = build.Builder(site)
		builder.on_any_event(watchdog.events.FileModifiedEvent(
			os.path.join(site.CONTENT_DIR, 'index.j2')))

		assert 'rebuilding' in capsys.readouterr().out
		assert pathlib.Path(site.PUBLIC_DIR, 'index.html').exists()

class TestReloader:
	@pytest.mark.parametrize('path', ['./conf_debug.py', './blog.py', './components.py'])
	def test_python_change_restarts(self, path):
		server = FakeServer()
		reloader = build.Reloader('conf_debug.py', server)

		reloader.on_any_event(watchdog.events.FileModifiedEvent(path))

		assert server.shutdowns == 1

	def test_other_change_ignored(self):
		server = FakeServer()
		reloader = build.Reloader('conf_debug.py', server)

		reloader.on_any_event(watchdog.events.FileModifiedEvent('./README.md'))

		assert server.shutdowns == 0

class TestRequestHandler:
	def _handler(self, tmp_path, monkeypatch, prefix):
		monkeypatch.setattr(build.RequestHandler, 'conf',
			types.SimpleNamespace(PATH_PREFIX=prefix),
			raising=False)

		handler = build.RequestHandler.__new__(build.RequestHandler)
		handler.directory = str(tmp_path)
		return handler

	def test_no_prefix(self, tmp_path, monkeypatch):
		handler = self._handler(tmp_path, monkeypatch, '')
		assert handler.translate_path('/about/') == str(tmp_path / 'about') + '/'

	def test_prefix_is_stripped(self, tmp_path, monkeypatch):
		handler = self._handler(tmp_path, monkeypatch, '/blog')

		assert handler.translate_path('/blog/about/') == str(tmp_path / 'about') + '/'
		assert handler.translate_path('/blog') == str(tmp_path) + '/'
		assert handler.translate_path('/other.css') == str(tmp_path / 'other.css')
