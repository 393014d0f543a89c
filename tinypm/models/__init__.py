from tinypm.db.base_class import Base
from tinypm.models.user import User
from tinypm.models.subscription import Subscription, SubscriptionStatus
from tinypm.models.custom_domain import CustomDomain, DomainStatus
from tinypm.models.content import Content, ContentType
