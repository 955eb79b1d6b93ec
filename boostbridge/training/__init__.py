"""
Training side of the booster bridge.

engines/  semantics (parameter translation, incremental training, importance)
steps/    orchestration over TrainingContext
pipeline  interval loop: train -> score, then final steps
"""
