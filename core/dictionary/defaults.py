"""Built-in dictionary used when no schema document is loaded."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from core.dictionary.models import Dictionary, freeze_enums

DEFAULT_TAGS: Mapping[int, str] = MappingProxyType(
    {
        1: "Account",
        6: "AvgPx",
        8: "BeginString",
        9: "BodyLength",
        10: "CheckSum",
        11: "ClOrdID",
        14: "CumQty",
        15: "Currency",
        30: "LastMkt",
        31: "LastPx",
        32: "LastQty",
        34: "MsgSeqNum",
        35: "MsgType",
        37: "OrderID",
        38: "OrderQty",
        39: "OrdStatus",
        40: "OrdType",
        41: "OrigClOrdID",
        44: "Price",
        49: "SenderCompID",
        52: "SendingTime",
        54: "Side",
        55: "Symbol",
        56: "TargetCompID",
        58: "Text",
        59: "TimeInForce",
        60: "TransactTime",
        64: "SettlDate",
        75: "TradeDate",
        128: "DeliverToCompID",
        131: "QuoteReqID",
        146: "NoRelatedSym",
        150: "ExecType",
        151: "LeavesQty",
        447: "PartyIDSource",
        448: "PartyID",
        452: "PartyRole",
        453: "NoPartyIDs",
        523: "PartySubID",
        526: "SecondaryClOrdID",
        537: "QuoteType",
        552: "NoSides",
        555: "NoLegs",
        556: "LegCurrency",
        588: "LegSettlDate",
        600: "LegSymbol",
        602: "LegSecurityID",
        603: "LegSecurityIDSource",
        609: "LegSecurityType",
        623: "LegRatioQty",
        624: "LegSide",
        654: "LegRefID",
        685: "LegOrderQty",
        802: "NoPartySubIDs",
        803: "PartySubIDType",
    }
)

DEFAULT_ENUMS: Mapping[int, Mapping[str, str]] = freeze_enums(
    {
        35: {
            "0": "Heartbeat",
            "8": "ExecutionReport",
            "A": "Logon",
            "D": "NewOrderSingle",
            "F": "OrderCancelRequest",
            "G": "OrderCancelReplaceRequest",
            "R": "QuoteRequest",
        },
        39: {"0": "New", "1": "PartiallyFilled", "2": "Filled", "4": "Canceled", "8": "Rejected"},
        40: {"1": "Market", "2": "Limit", "3": "Stop", "4": "Stop Limit"},
        54: {"1": "Buy", "2": "Sell", "5": "Sell Short", "6": "Sell Short Exempt"},
        59: {"0": "Day", "1": "GTC", "3": "IOC", "4": "FOK"},
        63: {"0": "Settlement", "1": "Trade", "2": "WhenIssued"},
        452: {
            "1": "ExecutingFirm",
            "2": "BrokerOfCredit",
            "3": "ClientId",
            "11": "OrderOriginationTrader",
            "12": "ExecutingTrader",
            "13": "OrderOriginationFirm",
        },
        537: {"0": "Indicative", "1": "Tradeable"},
    }
)

# No group schemas: without a loaded schema every field stays a leaf.
DEFAULT_DICTIONARY = Dictionary(tag_names=DEFAULT_TAGS, enums=DEFAULT_ENUMS)
