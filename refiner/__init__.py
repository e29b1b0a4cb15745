from .refiner import Refiner
from .suggestion_config import SuggestionConfig
