"""
Leave domain.

Leave request submission and review workflow, plus the conflict check that
keeps appointments off approved leave.
"""
