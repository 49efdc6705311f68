"""Savings/ROI simulation: input validation and the calculation engine.

- validation.py: SimulationInput, validate() and parse_input()
- engine.py: EngineConstants, SimulationEngine, simulate()
- cli.py: run one simulation from a JSON file
"""
