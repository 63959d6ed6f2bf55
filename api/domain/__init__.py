# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the Ley Karin process engine.

This package contains the statutory rules as pure functions and value
objects: no I/O, no clock reads. Callers pass "now" explicitly.
"""
