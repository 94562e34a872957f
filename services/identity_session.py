"""Process-wide identity state supplied by the identity provider."""

from __future__ import annotations

import logging
from typing import Optional

from utils.errors import NotAuthenticated


class IdentitySession:
	"""Hold the signed-in subject id for the lifetime of the process.

	The identity provider populates and clears this object; the pipeline and
	repositories only read it.
	"""

	def __init__(self) -> None:
		self._subject_id: Optional[str] = None
		self.loading = True

	@property
	def subject_id(self) -> Optional[str]:
		return self._subject_id

	@property
	def is_authenticated(self) -> bool:
		return self._subject_id is not None

	def sign_in(self, subject_id: str) -> None:
		"""Record a signed-in subject."""
		subject_id = (subject_id or "").strip()
		if not subject_id:
			raise ValueError("Subject id is required.")
		self._subject_id = subject_id
		self.loading = False
		logging.info("Identity signed in: %s", subject_id)

	def sign_out(self) -> None:
		"""Clear the current subject."""
		self._subject_id = None
		self.loading = False

	def current_subject(self) -> str:
		"""Return the signed-in subject id or raise NotAuthenticated."""
		if self._subject_id is None:
			raise NotAuthenticated("No user is signed in.")
		return self._subject_id
