"""
AI advisory flows.

Each module exposes an input model, an output model and `run(...)`: it reads a
bounded slice of the caller's farm records, renders a fixed prompt, asks the
LLM for a reply of a declared shape and merges in the locally built summary.
"""
