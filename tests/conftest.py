import pathlib
import textwrap
import types

import pytest
from pyquery import PyQuery

ROOT = pathlib.Path(__file__).parent.parent

HELLO = '''\
---
title: Hello World
description: Why this blog exists.
---

This is my first post on my new fake blog!
'''

FATIGUE = '''\
---
title: Meeting fatigue
---

Remote calendars are full.

<!-- more -->

Here is how we emptied them.
'''

SETUP = '''\
---
title: Setting up
---

First we install things.

Then we configure them.
'''

INDEX = '''\
---
title: All posts
---
{% extends "base.j2" %}
{% block content %}
{{ bio() }}
<ol>
{% for post in pages.posts() %}
<li><a class="post" href="{{ post.abs_url }}">{{ post.title }}</a><p>{{ post.excerpt }}</p></li>
{% endfor %}
</ol>
{% endblock %}
'''

ABOUT = '''\
---
title: About
---
{% extends "base.j2" %}
{% block content %}
<div class="about">{{ logo("kibana", 24) }} Kibana</div>
{% endblock %}
'''

NOT_FOUND = '''\
---
title: Not Found
dst: 404.html
---
{% extends "base.j2" %}
{% block content %}<h1>404: Not Found</h1>{% endblock %}
'''

METADATA = {
	'title': 'Anton Dosov',
	'description': 'Building tools for remote teams.',
	'author': {
		'name': 'Anton',
		'summary': 'building Meetter',
	},
	'social': {
		'twitter': 'antondosov',
	},
}

def parse(markup):
	return PyQuery(str(markup), parser='html')

def _write(path, content):
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(textwrap.dedent(content))

@pytest.fixture
def site(tmp_path):
	content = tmp_path / 'content'
	_write(content / 'index.j2', INDEX)
	_write(content / 'about.j2', ABOUT)
	_write(content / '404.j2', NOT_FOUND)
	_write(content / 'blog' / '2021-01-10-hello-world.md', HELLO)
	_write(content / 'blog' / '2021-03-02-meeting-fatigue' / 'index.md', FATIGUE)
	_write(content / 'blog' / '2021-03-02-meeting-fatigue' / 'calendar.svg', '<svg></svg>\n')
	_write(content / 'notes' / '2020-05-01-setting-up.md', SETUP)
	_write(content / 'images' / 'avatar.svg', '<svg></svg>\n')
	_write(tmp_path / 'assets' / 'css' / 'style.css', '.bio { display: flex; }\n')

	return types.SimpleNamespace(
		TITLE='Anton Dosov',
		SITE_METADATA=METADATA,
		PATH_PREFIX='',
		DEBUG=True,
		DEBUG_PORT=8000,
		ASSETS_DIR=str(tmp_path / 'assets'),
		CACHE_DIR=str(tmp_path / '.cache'),
		CONTENT_DIR=str(content),
		TEMPLATE_DIR=str(ROOT / 'templates'),
		PUBLIC_DIR=str(tmp_path / 'public'),
		CSS=['css/style.css'],
	)
