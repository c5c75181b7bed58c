from learnmongo.fields.base import PyObjectId
from learnmongo.fields.indexed import Indexed, IndexSpec

__all__ = [
    "PyObjectId",
    "Indexed",
    "IndexSpec",
]
