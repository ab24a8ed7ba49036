"""serverline: line editing with asynchronous output kept off the input line."""
# pylint: disable=wildcard-import,undefined-variable
from .linereader import *       # noqa
from .masking import *          # noqa
from .completion import *       # noqa
from .interceptor import *      # noqa
from .console import *          # noqa
from .session import *          # noqa
from .accessories import get_version as __get_version

__all__ = (
    linereader.__all__ +
    masking.__all__ +
    completion.__all__ +
    interceptor.__all__ +
    console.__all__ +
    session.__all__
)  # noqa

__license__ = 'ISC'
__version__ = __get_version()
