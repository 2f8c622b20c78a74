"""
Pipeline services: capture intake, IP registration, ownership lookup and AI remix.
"""

from .capture import *
from .registration import *
from .ownership import *
from .remix import *
