"""HTTP binding code generator."""

from .bindings import BindingDescriptor as BindingDescriptor
from .bindings import ClassificationError as ClassificationError
from .bindings import HttpBindingIndex as HttpBindingIndex
from .bindings import HttpLocation as HttpLocation
from .loader import ModelError as ModelError
from .loader import load as load
from .loader import load_file as load_file
from .plan import GenerationError as GenerationError
from .plan import plan_operations as plan_operations
from .protocols import PROTOCOLS as PROTOCOLS
from .protocols import filter_model as filter_model
from .protocols import resolve_protocol as resolve_protocol
from .python import generate as generate
from .python import render as render
from .settings import GeneratorSettings as GeneratorSettings
