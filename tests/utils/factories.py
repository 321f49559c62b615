"""
Test data factories for consistent request payloads

These factories build the camelCase JSON bodies the API accepts.
"""

import base64
from typing import Any, Dict, List, Optional, Tuple


class SessionFactory:
    """Factory for session request payloads"""

    @staticmethod
    def create_request(device_id: str = "device-1") -> Dict[str, Any]:
        return {"deviceId": device_id}

    @staticmethod
    def validate_request(password: str) -> Dict[str, Any]:
        return {"password": password}


class TransferFactory:
    """Factory for transfer block payloads"""

    @staticmethod
    def text_request(session_id: str, text: Optional[str] = "hello") -> Dict[str, Any]:
        return {"sessionId": session_id, "textContent": text}

    @staticmethod
    def file_request(session_id: str, files: List[Tuple[str, bytes, str]]) -> Dict[str, Any]:
        """Build a body with inline base64 files given as (name, bytes, media type)"""
        return {
            "sessionId": session_id,
            "files": [
                {
                    "name": name,
                    "size": len(data),
                    "type": media_type,
                    "content": base64.b64encode(data).decode("ascii"),
                }
                for name, data, media_type in files
            ],
        }
