"""tspopt: tour optimisation for the travelling salesman problem."""
from .errors import (ConstructionError, InfeasibleError, InvalidInstanceError, InvalidParameterError,
                     InvalidTourError, OutOfRangeError, TSPError)
from .instance import Instance
from .neighbors import NeighborLists
from .parsers import load_instance
from .solver import Construction, Mode, SearchStats, Solver, SolverConfig, Status, TourResult, solve
from .tour import Tour

__version__ = '0.1.0'

__all__ = [
    'Construction', 'ConstructionError', 'InfeasibleError', 'Instance', 'InvalidInstanceError',
    'InvalidParameterError', 'InvalidTourError', 'Mode', 'NeighborLists', 'OutOfRangeError',
    'SearchStats', 'Solver', 'SolverConfig', 'Status', 'TSPError', 'Tour', 'TourResult',
    'load_instance', 'solve',
]
