# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

Error mapping for the Ley Karin process API.
"""
