# Sphinx configuration of the TidyGround reference documentation.
#
# The reference is generated from the docstrings of the package,
# build it from the repository root with:
#
#     sphinx-build -b html docs/source docs/build

import os
import sys

# Document the sources of the checkout, even when the package is not installed.
sys.path.insert(0, os.path.abspath(os.path.join(__file__, '..', '..', '..', 'src')))

project = 'TidyGround'
copyright = '2026, TidyGround contributors'
author = 'TidyGround contributors'
release = '0.1.0'

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.autosummary',
    'sphinx.ext.intersphinx',
    'sphinx.ext.viewcode',
]

# Pages of the modules listed in index.rst are generated at build time.
autosummary_generate = True
autodoc_member_order = 'bysource'
autodoc_typehints = 'description'
autodoc_default_options = {
    'members': True,
    'show-inheritance': True,
}

intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'pyarrow': ('https://arrow.apache.org/docs', None),
}

html_theme = 'nature'
html_title = 'TidyGround reference'
