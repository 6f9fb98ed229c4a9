"""
Input validation and sanitization utilities
"""
import re
from typing import Optional
from fastapi import HTTPException

HEX_COLOR_PATTERN = re.compile(r'^#[0-9a-fA-F]{6}$')
TAG_NAME_MAX_LENGTH = 30


class InputValidator:
    """Centralized input validation and sanitization"""

    @staticmethod
    def sanitize_string(text: str, max_length: Optional[int] = None) -> str:
        """Strip markup and control characters from free text"""
        if not text:
            return ""

        # Markup is stripped; escaping happens wherever the text is rendered
        sanitized = re.sub(r'<[^>]*>', '', text.strip())

        # Control characters
        sanitized = re.sub(r'[\x00-\x1F\x7F]', ' ', sanitized)

        # Remove excessive whitespace
        sanitized = re.sub(r'\s+', ' ', sanitized).strip()

        if max_length and len(sanitized) > max_length:
            sanitized = sanitized[:max_length]

        return sanitized

    @staticmethod
    def validate_email(email: str) -> str:
        """Validate and normalize email address"""
        if not email:
            raise HTTPException(status_code=400, detail="Email is required")

        email = email.strip().lower()

        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, email) or len(email) > 254:
            raise HTTPException(status_code=400, detail="Invalid email format")

        return email

    @staticmethod
    def validate_password_strength(password: str) -> str:
        """Validate password strength"""
        if not password:
            raise HTTPException(status_code=400, detail="Password is required")

        if len(password) < 8:
            raise HTTPException(status_code=400, detail="Password must be at least 8 characters long")

        # bcrypt only looks at the first 72 bytes
        if len(password.encode("utf-8")) > 72:
            raise HTTPException(status_code=400, detail="Password too long")

        if not re.search(r'[A-Za-z]', password) or not re.search(r'\d', password):
            raise HTTPException(status_code=400, detail="Password must contain letters and digits")

        return password

    @staticmethod
    def validate_name(name: str, field: str = "Name") -> str:
        """Validate and sanitize a person's name"""
        if not name:
            raise HTTPException(status_code=400, detail=f"{field} is required")

        name = InputValidator.sanitize_string(name, max_length=100)

        if len(name) < 2:
            raise HTTPException(status_code=400, detail=f"{field} must be at least 2 characters long")

        return name

    @staticmethod
    def validate_phone(phone: Optional[str]) -> Optional[str]:
        """Validate an international phone number, empty means no phone"""
        if not phone or not phone.strip():
            return None

        cleaned = re.sub(r'[\s\-().]', '', phone)
        if not re.match(r'^\+?[1-9]\d{6,14}$', cleaned):
            raise HTTPException(status_code=400, detail="Invalid phone number")

        return phone.strip()

    @staticmethod
    def sanitize_file_name(file_name: str) -> str:
        """Drop any directory part and replace unsafe characters"""
        name = re.sub(r'^.*[\\/]', '', file_name or '')
        return re.sub(r'[^a-zA-Z0-9._-]', '_', name)


def is_valid_tag_name(name: str) -> bool:
    return 0 < len(name.strip()) <= TAG_NAME_MAX_LENGTH


def is_valid_hex_color(color: str) -> bool:
    return bool(HEX_COLOR_PATTERN.match(color or ''))
