"""
DiSPA timeline toolkit

Core modules:
- player: tick rules for timeline counters and rule dispatch
- models / actions: timelines, rules, rule tables and the action variants
- boundary: the engine surface actions are dispatched to
- parser / compiler / mcfunction: .dspa source -> rule table -> command script
- events: per-tick event records, numbered per timeline
- build: compile a whole source folder into command scripts
- trace: helpers for producing human-readable tick traces (no behavior changes)
"""
