from .flow import Cascade, Flow, FlowDef, FlowProcess, Step, merge_flows, sh

__all__ = ["Cascade", "Flow", "FlowDef", "FlowProcess", "Step", "merge_flows", "sh"]
