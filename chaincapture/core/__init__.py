"""
Core infrastructure modules for content storage, chain access and utilities.
"""

from .errors import *
from .utils import *
from .storage import *
from .ledger import *
from .chain import *
