"""
Training pipeline: fold finalized sessions into the relationship model.

Modules
-------
identity      : EntityIndex + resolve_entity() — pure in-memory
                resolve-or-create over id / external-id / name indexes.
context       : ResolvedEntity + resolve_training_context() — the entity
                set one record trains, with new-context flags per mode.
trainer       : RelationTrainer + WeightTracker + PoolSizes — per-source
                weight, confidence and ranking updates.
unit_of_work  : TrainingUnitOfWork — harvest, bulk load, train in memory,
                bulk write. Shared by both entry points below.
recorder      : record_session_completion() — single-record path.
batch         : reprocess_all_history() — chunked history replay with
                progress and cooperative cancellation.
"""
