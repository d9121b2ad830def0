from photo_intake.core.models.team import Team
from photo_intake.core.models.photo import Photo
from photo_intake.auth.models import User, UserSchool

__all__ = ["Team", "Photo", "User", "UserSchool"]
