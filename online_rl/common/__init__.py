"""
common
======

Building blocks shared by the actor-critic learners: domains and
transitions, parameter schedules, capability interfaces, policies, noises,
critics, episode drivers and metric loggers.
"""
