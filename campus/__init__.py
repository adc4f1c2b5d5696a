"""
Campus: a university campus management platform

Manages campus events, examinations, hostel accommodation and the
transport fleet, with a shared persistence layer, cross-domain reports
and a REST API.
"""

__version__ = "1.0.0"
__author__ = "Campus Development Team"
__description__ = "University campus management: events, exams, hostel and transport"
