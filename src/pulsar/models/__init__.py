from .responses import HostEvent, PhpInfo, Project, TailStatus

__all__ = ["HostEvent", "PhpInfo", "Project", "TailStatus"]
