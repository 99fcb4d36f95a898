"""User directory schema."""
from pydantic import BaseModel, ConfigDict
from typing import List


class DirectoryUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    display_name: str
    role: str
    secondary_roles: List[str] = []
    
    @property
    def roles(self) -> List[str]:
        """Primary role followed by secondary roles."""
        return [self.role, *self.secondary_roles]
