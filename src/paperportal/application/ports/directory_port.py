"""DirectoryPort: read access to users and reference data."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class DirectoryPort(Protocol):
    """Users, faculty members and research categories."""

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]: ...

    def display_name(self, user_id: str) -> Optional[str]: ...

    def list_users(self, *, role: Optional[str] = None) -> List[Dict[str, Any]]: ...

    def list_faculty(self, *, department: Optional[str] = None) -> List[Dict[str, Any]]: ...

    def list_categories(self) -> List[Dict[str, Any]]: ...
