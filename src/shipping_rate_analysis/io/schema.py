# src/shipping_rate_analysis/io/schema.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldDefinition:
    name: str
    label: str
    required: bool
    # Compared against the normalized header (lowercase, no `_`/`-`/whitespace)
    exact: tuple[str, ...]
    strong: tuple[str, ...] = ()


# Priority order matters: in conservative mode a header claimed by an earlier
# field is not offered to later ones.
FIELD_DEFINITIONS: tuple[FieldDefinition, ...] = (
    FieldDefinition(
        "tracking_id", "Tracking ID", False,
        exact=("trackingid", "trackingnumber", "tracking", "trackingno", "tracking#"),
        strong=("shipmentid", "packageid", "trackno", "waybill", "airwaybill", "awb"),
    ),
    FieldDefinition(
        "service", "Service Type", False,
        exact=("service", "servicetype", "servicelevel", "shippingservice", "carrierservice"),
        strong=("deliveryservice", "shipmethod", "shippingmethod", "servicename", "mailclass"),
    ),
    FieldDefinition(
        "carrier", "Carrier", False,
        exact=("carrier", "carriername", "shippingcarrier"),
        strong=("shipper", "courier"),
    ),
    FieldDefinition(
        "weight", "Weight", True,
        exact=("weight", "weightlbs", "packageweight", "shipmentweight", "actualweight"),
        strong=("billedweight", "billableweight", "wt", "lbs", "pounds"),
    ),
    FieldDefinition(
        "cost", "Current Cost", False,
        exact=("cost", "currentcost", "currentrate", "shippingcost", "totalcost",
               "totalcharge", "totalcharges", "charge"),
        strong=("rate", "price", "amount", "netcharge", "netamount", "billedamount",
                "freight", "fee"),
    ),
    FieldDefinition(
        "origin_zip", "Origin ZIP", True,
        exact=("originzip", "originzipcode", "originpostalcode", "fromzip", "shipfromzip",
               "senderzip", "shipperzip"),
        strong=("originpostal", "shipfrompostalcode", "senderpostalcode", "shipperpostalcode",
                "pickupzip"),
    ),
    FieldDefinition(
        "dest_zip", "Destination ZIP", True,
        exact=("destzip", "destinationzip", "destinationzipcode", "destinationpostalcode",
               "tozip", "shiptozip", "recipientzip", "receiverzip"),
        strong=("destpostal", "shiptopostalcode", "recipientpostalcode", "deliveryzip",
                "consigneezip"),
    ),
    FieldDefinition(
        "length", "Length", False,
        exact=("length", "len", "lengthin", "packagelength"),
        strong=("lengthinches", "dimlength"),
    ),
    FieldDefinition(
        "width", "Width", False,
        exact=("width", "wid", "widthin", "packagewidth"),
        strong=("widthinches", "dimwidth"),
    ),
    FieldDefinition(
        "height", "Height", False,
        exact=("height", "hgt", "heightin", "packageheight"),
        strong=("heightinches", "dimheight"),
    ),
    FieldDefinition(
        "shipper_name", "Shipper Name", False,
        exact=("shippername", "sendername", "fromname", "shipfromname"),
    ),
    FieldDefinition(
        "shipper_address", "Shipper Address", False,
        exact=("shipperaddress", "senderaddress", "fromaddress", "shipfromaddress"),
    ),
    FieldDefinition(
        "shipper_city", "Shipper City", False,
        exact=("shippercity", "sendercity", "fromcity", "shipfromcity", "origincity"),
    ),
    FieldDefinition(
        "shipper_state", "Shipper State", False,
        exact=("shipperstate", "senderstate", "fromstate", "shipfromstate", "originstate"),
    ),
    FieldDefinition(
        "recipient_name", "Recipient Name", False,
        exact=("recipientname", "receivername", "toname", "shiptoname", "consigneename"),
    ),
    FieldDefinition(
        "recipient_address", "Recipient Address", False,
        exact=("recipientaddress", "receiveraddress", "toaddress", "shiptoaddress",
               "deliveryaddress", "consigneeaddress"),
    ),
    FieldDefinition(
        "recipient_city", "Recipient City", False,
        exact=("recipientcity", "receivercity", "tocity", "shiptocity", "destinationcity",
               "destcity"),
    ),
    FieldDefinition(
        "recipient_state", "Recipient State", False,
        exact=("recipientstate", "receiverstate", "tostate", "shiptostate", "destinationstate",
               "deststate"),
    ),
    FieldDefinition(
        "zone", "Shipping Zone", False,
        exact=("zone", "shippingzone", "ratezone"),
    ),
    FieldDefinition(
        "is_residential", "Residential Flag", False,
        exact=("residential", "isresidential", "residentialflag", "resi"),
        strong=("residentialindicator", "homedelivery", "addresstype"),
    ),
    FieldDefinition(
        "ship_date", "Ship Date", False,
        exact=("shipdate", "shippeddate", "sentdate", "dateshipped"),
    ),
    FieldDefinition(
        "delivery_date", "Delivery Date", False,
        exact=("deliverydate", "delivereddate", "datedelivered"),
    ),
)

FIELDS_BY_NAME = {f.name: f for f in FIELD_DEFINITIONS}

REQUIRED_FIELDS: tuple[str, ...] = tuple(
    f.name for f in FIELD_DEFINITIONS if f.required)

# Column order of the per-shipment results frame
RESULT_COLUMNS = [
    "shipment_id",
    "tracking_id",
    "original_service",
    "category",
    "service_confidence",
    "is_residential",
    "residential_source",
    "carrier_type",
    "account_name",
    "service_code",
    "category_used",
    "is_substitution",
    "significant_substitution",
    "chosen_rate",
    "markup_percent",
    "final_price",
    "current_cost",
    "savings",
    "savings_percent",
]

ORPHAN_COLUMNS = [
    "shipment_id",
    "tracking_id",
    "origin_zip",
    "dest_zip",
    "weight",
    "service",
    "reason",
    "error",
]
