# agegender/web/__init__.py
"""
Web module - Flask server và analysis API.
"""
from .server import run_server, setup_analysis, app
from .analysis import analysis_bp, init_analysis

__all__ = [
    'run_server',
    'setup_analysis',
    'app',
    'analysis_bp',
    'init_analysis',
]
