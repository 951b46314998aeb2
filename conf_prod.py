from conf_debug import *

SITEURL = 'https://dosant.github.io'

DEBUG = False
