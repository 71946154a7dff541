"""
Documents module - quotes, invoices and credit notes

Lifecycle: DRAFT -> SENT -> PAID / CANCELLED. Sending assigns the legal
reference (FAC-2025-0001, DEV-..., AV-...) and archives a PDF snapshot;
paying records the income transaction; cancelling a sent document spawns a
draft credit note.

Components:
- models.py: Document and DocumentLine
- calculator.py: line totals and fiscal category subtotals
- crud.py: repository with conditional status updates
- service.py: lifecycle transitions
- router.py: REST endpoints
- tasks.py: PDF snapshot backfill (Celery)
"""
