import re
from typing import List, Tuple


class PasswordValidator:
    def __init__(self, min_length: int = 6):
        self.min_length = min_length
        self.common_sequences = [
            '0123456789', '9876543210',
            'abcdefghijklmnopqrstuvwxyz',
            'qwertyuiop', 'asdfghjkl',
        ]
        self.common_passwords = [
            'password', '123456', 'qwerty', 'admin', 'welcome',
            'letmein', 'monkey', 'dragon', 'school', 'student',
        ]

    def check_sequential_patterns(self, password: str) -> List[str]:
        """Check for sequential patterns in the password."""
        issues = []

        if re.search(r'(.)\1{3,}', password):
            issues.append("Password repeats the same character too often")

        for seq in self.common_sequences:
            if seq in password.lower():
                issues.append(f"Password contains a common sequence: {seq}")

        return issues

    def check_common_passwords(self, password: str) -> bool:
        """Check if the password is in the list of common passwords."""
        return password.lower() in self.common_passwords

    def validate_password(self, password: str) -> Tuple[bool, List[str]]:
        """Validate password strength and return (is_valid, issues)."""
        issues = []

        if len(password) < self.min_length:
            issues.append(f"Password must be at least {self.min_length} characters long")

        issues.extend(self.check_sequential_patterns(password))

        if self.check_common_passwords(password):
            issues.append("Password is too common and easily guessable")

        return len(issues) == 0, issues
