"""In-process change notification for store subscribers."""
from collections import defaultdict
from typing import Any, Callable, Dict, List
import logging


logger = logging.getLogger(__name__)


class ChangeFeed:
    """
    Registry of change listeners keyed by document key.
    
    Stores publish the fresh document after every successful commit. One
    instance is shared by the application (kept on app.state); each test
    can build its own.
    """
    
    def __init__(self):
        """Initialize an empty listener registry."""
        self._listeners: Dict[str, List[Callable[[Any], None]]] = defaultdict(list)
    
    def subscribe(self, key: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """
        Register a listener for a key.
        
        Args:
            key: Document key (e.g. "schedules/2024-W24")
            callback: Called with the new document value
            
        Returns:
            A function that removes the listener
        """
        self._listeners[key].append(callback)
        
        def unsubscribe() -> None:
            if callback in self._listeners.get(key, []):
                self._listeners[key].remove(callback)
        
        return unsubscribe
    
    def publish(self, key: str, value: Any) -> None:
        """
        Deliver a new value to every listener of a key.
        
        A failing listener is logged and does not stop the others.
        """
        for callback in list(self._listeners.get(key, [])):
            try:
                callback(value)
            except Exception as e:
                logger.error(f"Change listener for {key} failed: {e}", exc_info=True)
    
    def listener_count(self, key: str) -> int:
        """Number of listeners registered for a key."""
        return len(self._listeners.get(key, []))
