from .user import User
from .chat import Chat, Message, Stream
from .intake import WaterIntakeLog, CaloriesIntakeLog
from .memory import UserMemory
