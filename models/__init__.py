# Importing the package registers every table with the metadata.
from .player import *
from .crime import *
from .rank import *
from .bank import *
from .garage import *
from .properties import *
