"""Read access to user roles and display names."""
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from datetime import datetime

from shiftboard.models.user import User
from shiftboard.schemas.user import DirectoryUser


class UserDirectory:
    """Service for looking up users and their roles."""
    
    def __init__(self, db: Session):
        """
        Initialize user directory.
        
        Args:
            db: Database session
        """
        self.db = db
    
    def get_user(self, user_id: str) -> Optional[DirectoryUser]:
        """
        Get a user by ID.
        
        Returns:
            DirectoryUser, or None if unknown
        """
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            return None
        return DirectoryUser.model_validate(user)
    
    def list_users(self) -> List[DirectoryUser]:
        """Get all users ordered by display name."""
        users = self.db.query(User).order_by(User.display_name.asc()).all()
        return [DirectoryUser.model_validate(u) for u in users]
    
    def users_by_id(self) -> Dict[str, DirectoryUser]:
        """Get all users keyed by ID."""
        return {u.id: u for u in self.list_users()}
    
    def save_user(self, directory_user: DirectoryUser) -> DirectoryUser:
        """
        Create or update a user.
        
        Args:
            directory_user: User data to store
            
        Returns:
            The stored user
        """
        user = self.db.query(User).filter(User.id == directory_user.id).first()
        if user:
            user.display_name = directory_user.display_name
            user.role = directory_user.role
            user.secondary_roles = list(directory_user.secondary_roles)
            user.updated_at = datetime.utcnow()
        else:
            user = User(
                id=directory_user.id,
                display_name=directory_user.display_name,
                role=directory_user.role,
                secondary_roles=list(directory_user.secondary_roles),
                created_at=datetime.utcnow(),
                updated_at=datetime.utcnow()
            )
            user.validate()
            self.db.add(user)
        
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        
        return DirectoryUser.model_validate(user)
