from .auth import User, UserStatus
from .schools import School, SchoolType, Department
from .customers import Customer, InfluenceLevel, DecisionPower, CustomerStatus
from .visits import VisitRecord, VisitType, VisitStatus, IntentLevel
from .security import SecurityEvent

__all__ = [
    'User', 'UserStatus',
    'School', 'SchoolType', 'Department',
    'Customer', 'InfluenceLevel', 'DecisionPower', 'CustomerStatus',
    'VisitRecord', 'VisitType', 'VisitStatus', 'IntentLevel',
    'SecurityEvent',
]
