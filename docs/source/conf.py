# Sphinx configuration for the radioNetSim API reference.
#
# The reference is generated from the numpydoc docstrings of the radionetsim
# package. Build from this directory with: sphinx-build . _build


# -- Package import ----------------------------------------------------------
import os
import sys
sys.path.insert(0, os.path.abspath('../..'))
import radionetsim

project = 'radioNetSim'
author = radionetsim.__author__
release = radionetsim.__version__
version = '.'.join(release.split('.')[:2])


# -- Extensions --------------------------------------------------------------

extensions = [
    'sphinx.ext.autodoc',           # Module, class and function pages
    'sphinx.ext.napoleon',          # numpydoc sections
    'sphinx.ext.viewcode',          # Source links
    'sphinx.ext.intersphinx',       # Python and NumPy cross references
    'sphinx_copybutton',            # Copy button without >>> prompts
]

templates_path = ['_templates']
exclude_patterns = ['_build']


# -- HTML --------------------------------------------------------------------

html_theme = 'sphinx_rtd_theme'
html_static_path = ['_static']
html_show_copyright = False
html_theme_options = {
    'navigation_depth': 3,
    'collapse_navigation': False,
}


# -- Docstrings --------------------------------------------------------------

# Only numpydoc is used in the package
napoleon_google_docstring = False
napoleon_numpy_docstring = True
napoleon_include_init_with_doc = True
napoleon_use_admonition_for_notes = True
napoleon_use_rtype = False
napoleon_custom_sections = ['Global Variables', 'Properties']

autodoc_default_options = {
    'members': True,
    'member-order': 'bysource',
    'show-inheritance': True,
}
autodoc_typehints = 'description'


# -- Cross references and copy button ----------------------------------------

intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'numpy': ('https://numpy.org/doc/stable/', None),
}

copybutton_prompt_text = r">>> |\.\.\. "
copybutton_prompt_is_regexp = True
