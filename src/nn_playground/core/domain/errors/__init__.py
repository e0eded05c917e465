from .architecture import *
from .base import *
from .dataset import *
from .training import *
