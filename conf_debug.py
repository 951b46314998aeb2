TITLE = 'Anton Dosov'
SITEURL = ''

SITE_METADATA = {
	'title': TITLE,
	'description': 'Building tools for remote teams.',
	'author': {
		'name': 'Anton',
		'summary': 'building Meetter, a tool that keeps meeting fatigue away from remote teams',
	},
	'social': {
		'twitter': 'antondosov',
	},
}

# Set when the site is served from a sub-path, eg. '/blog'
PATH_PREFIX = ''

DEBUG = True
DEBUG_PORT = 8000

ASSETS_DIR = 'assets/'
CACHE_DIR = '.cache/'
CONTENT_DIR = 'content/'
TEMPLATE_DIR = 'templates/'

PUBLIC_DIR = 'public/'

CSS = [
	'css/style.css',
]
