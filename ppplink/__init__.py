from .errors import (
    LinkError,
    MalformedFrame,
    CorruptPayload,
    QueueOverflow,
    UnsupportedProtocol,
    StateViolation,
)
from .protocols import (
    Family,
    PPP_IPV4,
    PPP_IPV4_COMPRESSED,
    PPP_IPV6,
    PPP_IPV6_COMPRESSED,
    ETHER_IPV4,
    ETHER_IPV6,
)
from .headers import (
    PppHeader,
    Ipv4Header,
    Ipv6Header,
    UdpHeader,
    SeqTsHeader,
    HeaderChain,
    HeaderStack,
)
from .codecs import CodecConfig, ICodec, DeflateCodec, PassThroughCodec, make_codec
from .rewriter import FrameRewriter
from .link import LinkState, LinkStateMachine, Phase
from .medium import DropTailQueue, PointToPointChannel, RateErrorModel, ListErrorModel, Simulator
from .config import LinkConfig, ChannelConfig, Scenario, load_scenario, load_link_config
from .device import PointToPointDevice, TRACE_SOURCES
from .helper import Link, install, udp_packet

__all__ = [
    "LinkError",
    "MalformedFrame",
    "CorruptPayload",
    "QueueOverflow",
    "UnsupportedProtocol",
    "StateViolation",
    "Family",
    "PPP_IPV4",
    "PPP_IPV4_COMPRESSED",
    "PPP_IPV6",
    "PPP_IPV6_COMPRESSED",
    "ETHER_IPV4",
    "ETHER_IPV6",
    "PppHeader",
    "Ipv4Header",
    "Ipv6Header",
    "UdpHeader",
    "SeqTsHeader",
    "HeaderChain",
    "HeaderStack",
    "CodecConfig",
    "ICodec",
    "DeflateCodec",
    "PassThroughCodec",
    "make_codec",
    "FrameRewriter",
    "LinkState",
    "LinkStateMachine",
    "Phase",
    "DropTailQueue",
    "PointToPointChannel",
    "RateErrorModel",
    "ListErrorModel",
    "Simulator",
    "LinkConfig",
    "ChannelConfig",
    "Scenario",
    "load_scenario",
    "load_link_config",
    "PointToPointDevice",
    "TRACE_SOURCES",
    "Link",
    "install",
    "udp_packet",
]

__version__ = "0.1.0"
