"""
Reusable page components, rendered to Markup so site templates can embed
them without further escaping.
"""

import functools

import jinja2
import markupsafe

AVATAR = '/images/avatar.svg'

FOOTER_LINKS = [
	('Remeet', 'https://www.remeet.com/'),
	('Twitter', 'https://twitter.com/antondosov'),
	('Linkedin', 'https://www.linkedin.com/in/antondosov/'),
	('Github', 'https://github.com/Dosant'),
]

FOOTER_SEP = ' • '

_jinja = jinja2.Environment(
	autoescape=True,
	trim_blocks=True,
	lstrip_blocks=True)

LAYOUT = _jinja.from_string('''\
<div class="global-wrapper" data-is-root-path="{{ 'true' if is_root else 'false' }}">
<header class="global-header">
{% if is_root %}
<h1 class="main-heading"><a href="{{ home }}">{{ title }}</a></h1>
{% else %}
<a class="header-link-home" href="{{ home }}">{{ title }}</a>
{% endif %}
</header>
<main>{{ children }}</main>
<footer>
{% for name, href in links %}
<a href="{{ href }}">{{ name }}</a>{% if not loop.last %}{{ sep }}{% endif %}

{% endfor %}
</footer>
</div>
''')

BIO = _jinja.from_string('''\
<div class="bio">
<img class="bio-avatar" src="{{ avatar }}" width="50" height="50" alt="Profile picture">
{% if author.summary %}
<p>
Hi, I'm <strong>{{ author.name or '' }}</strong>.
<br/>
I am building <a href="https://meetter.app" target="_blank">Meetter</a>, a tool that keeps meeting fatigue \
away from dozens of remote teams scattered across the globe.
<br/>
<a href="https://twitter.com/{{ social.twitter or '' }}">You can follow my journey on Twitter.</a>
</p>
{% endif %}
</div>
''')

KIBANA = _jinja.from_string('''\
<svg version="1.1" width="{{ size }}" height="{{ size }}" viewBox="0 0 32 32" \
xmlns="http://www.w3.org/2000/svg" focusable="false" role="img" aria-hidden="true" title="Kibana logo">
<g fill="none" fill-rule="evenodd">
<path fill="#F04E98" d="M4 0v28.789L28.935.017z"></path>
<path class="euiIcon__fillNegative" d="M4 12v16.789l11.906-13.738A24.721 24.721 0 004 12"></path>
<path fill="#00BFB3" d="M18.479 16.664L6.268 30.754l-1.073 1.237h23.191c-1.252-6.292-4.883-11.719-9.908-15.327"></path>
</g>
</svg>
''')

def layout(location, title, children, path_prefix='', links=FOOTER_LINKS):
	# Anything that isn't the exact root path, malformed or not, is a sub-page
	root_path = path_prefix + '/'

	return markupsafe.Markup(LAYOUT.render(
		is_root=location == root_path,
		home=root_path,
		title=title,
		children=markupsafe.Markup(children if children is not None else ''),
		links=links,
		sep=FOOTER_SEP))

def bio(metadata=None, avatar=AVATAR):
	metadata = metadata or {}
	author = metadata.get('author') or {}
	social = metadata.get('social') or {}

	return markupsafe.Markup(BIO.render(
		avatar=author.get('avatar') or avatar,
		author=author,
		social=social))

def kibana_logo(size=16):
	return markupsafe.Markup(KIBANA.render(size=size))

LOGOS = {
	'kibana': kibana_logo,
}

def logo(name, size=16):
	return LOGOS[name](size=size)

def register(jinja, conf):
	prefix = conf.get('PATH_PREFIX', '')
	metadata = conf.get('SITE_METADATA', {})

	jinja.globals['layout'] = functools.partial(layout, path_prefix=prefix)
	jinja.globals['bio'] = functools.partial(bio, metadata, avatar=prefix + AVATAR)
	jinja.globals['logo'] = logo
	jinja.globals['kibana_logo'] = kibana_logo
