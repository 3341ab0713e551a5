"""
Signals emitted by the review workflow for external collaborators
(audit trail, notifications). Sent only after the transaction commits.
"""

from django.dispatch import Signal

# Sent with: review, previous_status, new_status, caller_id, metadata
review_transitioned = Signal()
