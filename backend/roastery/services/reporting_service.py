# Overview: Service-layer operations for analytics and reports; read-only aggregations.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import aliased

from roastery.extensions import db
from roastery.errors import ValidationError
from roastery.models import (
    GreenCoffee,
    InventoryDiscrepancy,
    Order,
    RetailInventory,
    RetailInventoryHistory,
    RoastingBatch,
    Shop,
    User,
)
from roastery.models.coffee import kg
from roastery.services import access_service
from roastery.time_utils import parse_iso_datetime, utcnow, to_utc_z


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ValidationError("fromDate and toDate must be ISO-8601 dates")
    if start_dt and end_dt and end_dt < start_dt:
        raise ValidationError("toDate cannot be before fromDate")
    return start_dt, end_dt


def _scope(query, column, actor: User):
    """Restrict a shop-keyed query to the shops the actor can see."""
    allowed = access_service.accessible_shop_ids(actor)
    if allowed is None:
        return query
    return query.filter(column.in_(allowed or [-1]))


def inventory_analytics(*, actor: User, start: str | None, end: str | None) -> list[dict]:
    """Retail inventory changes within the range, newest first."""
    start_dt, end_dt = _parse_range(start, end)

    query = (
        db.session.query(RetailInventoryHistory, Shop.name, GreenCoffee.name, GreenCoffee.grade, User.username)
        .join(Shop, Shop.id == RetailInventoryHistory.shop_id)
        .join(GreenCoffee, GreenCoffee.id == RetailInventoryHistory.green_coffee_id)
        .outerjoin(User, User.id == RetailInventoryHistory.updated_by_id)
    )
    query = _scope(query, RetailInventoryHistory.shop_id, actor)
    if start_dt:
        query = query.filter(RetailInventoryHistory.updated_at >= start_dt)
    if end_dt:
        query = query.filter(RetailInventoryHistory.updated_at <= end_dt)

    rows = query.order_by(RetailInventoryHistory.updated_at.desc(), RetailInventoryHistory.id.desc()).all()
    return [
        {
            "date": to_utc_z(history.updated_at),
            "shopId": history.shop_id,
            "shopName": shop_name,
            "greenCoffeeId": history.green_coffee_id,
            "coffeeName": coffee_name,
            "coffeeGrade": grade,
            "smallBags": history.new_small_bags,
            "largeBags": history.new_large_bags,
            "updateType": history.update_type,
            "updatedByUsername": username,
        }
        for history, shop_name, coffee_name, grade, username in rows
    ]


def order_analytics(*, actor: User, start: str | None, end: str | None) -> list[dict]:
    start_dt, end_dt = _parse_range(start, end)

    creator = aliased(User)
    updater = aliased(User)
    query = (
        db.session.query(Order, Shop.name, GreenCoffee.name, GreenCoffee.grade, creator.username, updater.username)
        .join(Shop, Shop.id == Order.shop_id)
        .join(GreenCoffee, GreenCoffee.id == Order.green_coffee_id)
        .outerjoin(creator, creator.id == Order.created_by_id)
        .outerjoin(updater, updater.id == Order.updated_by_id)
    )
    query = _scope(query, Order.shop_id, actor)
    if start_dt:
        query = query.filter(Order.created_at >= start_dt)
    if end_dt:
        query = query.filter(Order.created_at <= end_dt)

    rows = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
    return [
        {
            "date": to_utc_z(order.created_at),
            "orderId": order.id,
            "shopId": order.shop_id,
            "shopName": shop_name,
            "greenCoffeeId": order.green_coffee_id,
            "coffeeName": coffee_name,
            "coffeeGrade": grade,
            "status": order.status,
            "smallBags": order.small_bags,
            "largeBags": order.large_bags,
            "createdByUsername": created_by,
            "updatedAt": to_utc_z(order.updated_at) if order.updated_at else None,
            "updatedByUsername": updated_by,
        }
        for order, shop_name, coffee_name, grade, created_by, updated_by in rows
    ]


def roasting_analytics(*, start: str | None, end: str | None) -> list[dict]:
    """Roasting batches within the range, oldest first."""
    start_dt, end_dt = _parse_range(start, end)

    query = (
        db.session.query(RoastingBatch, GreenCoffee.name, User.username)
        .join(GreenCoffee, GreenCoffee.id == RoastingBatch.green_coffee_id)
        .outerjoin(User, User.id == RoastingBatch.roaster_id)
    )
    if start_dt:
        query = query.filter(RoastingBatch.created_at >= start_dt)
    if end_dt:
        query = query.filter(RoastingBatch.created_at <= end_dt)

    rows = query.order_by(RoastingBatch.created_at.asc(), RoastingBatch.id.asc()).all()
    return [
        {
            "date": to_utc_z(batch.created_at),
            "batchId": batch.id,
            "greenCoffeeId": batch.green_coffee_id,
            "coffeeName": coffee_name,
            "roasterId": batch.roaster_id,
            "roasterName": roaster_name,
            "plannedAmount": kg(batch.planned_amount),
            "roastedAmount": kg(batch.roasted_amount),
            "roastingLoss": kg(batch.roasting_loss),
            "smallBagsProduced": batch.small_bags_produced,
            "largeBagsProduced": batch.large_bags_produced,
        }
        for batch, coffee_name, roaster_name in rows
    ]


def inventory_status_report(*, actor: User) -> dict:
    coffees = db.session.query(GreenCoffee).order_by(GreenCoffee.name.asc()).all()

    query = (
        db.session.query(RetailInventory, Shop.name, GreenCoffee.name)
        .join(Shop, Shop.id == RetailInventory.shop_id)
        .join(GreenCoffee, GreenCoffee.id == RetailInventory.green_coffee_id)
        .filter(Shop.is_active.is_(True))
    )
    query = _scope(query, RetailInventory.shop_id, actor)
    inventories = query.order_by(Shop.name.asc(), GreenCoffee.name.asc()).all()

    return {
        "greenCoffeeStatus": [
            {
                "id": coffee.id,
                "name": coffee.name,
                "grade": coffee.grade,
                "currentStock": kg(coffee.current_stock),
                "minThreshold": kg(coffee.min_threshold),
                "isBelowThreshold": coffee.is_below_threshold,
            }
            for coffee in coffees
        ],
        "shopInventories": [
            {
                "shopId": inv.shop_id,
                "shopName": shop_name,
                "greenCoffeeId": inv.green_coffee_id,
                "coffeeName": coffee_name,
                "smallBags": inv.small_bags,
                "largeBags": inv.large_bags,
            }
            for inv, shop_name, coffee_name in inventories
        ],
        "generatedAt": to_utc_z(utcnow()),
    }


def shop_performance_report(*, actor: User) -> dict:
    orders_query = (
        db.session.query(
            Order.shop_id,
            Shop.name,
            func.count(Order.id).label("orders_count"),
            func.coalesce(func.sum(Order.small_bags), 0).label("total_small_bags"),
            func.coalesce(func.sum(Order.large_bags), 0).label("total_large_bags"),
        )
        .join(Shop, Shop.id == Order.shop_id)
        .group_by(Order.shop_id, Shop.name)
    )
    orders_query = _scope(orders_query, Order.shop_id, actor)

    discrepancy_query = (
        db.session.query(
            InventoryDiscrepancy.shop_id,
            Shop.name,
            func.count(InventoryDiscrepancy.id).label("discrepancy_count"),
        )
        .join(Shop, Shop.id == InventoryDiscrepancy.shop_id)
        .group_by(InventoryDiscrepancy.shop_id, Shop.name)
    )
    discrepancy_query = _scope(discrepancy_query, InventoryDiscrepancy.shop_id, actor)

    return {
        "shopOrders": [
            {
                "shopId": shop_id,
                "shopName": name,
                "ordersCount": int(count),
                "totalSmallBags": int(small),
                "totalLargeBags": int(large),
            }
            for shop_id, name, count, small, large in orders_query.order_by(Shop.name.asc()).all()
        ],
        "discrepancies": [
            {"shopId": shop_id, "shopName": name, "discrepancyCount": int(count)}
            for shop_id, name, count in discrepancy_query.order_by(Shop.name.asc()).all()
        ],
        "generatedAt": to_utc_z(utcnow()),
    }


def coffee_consumption_report(*, actor: User) -> dict:
    consumption_query = (
        db.session.query(
            Order.green_coffee_id,
            GreenCoffee.name,
            func.coalesce(func.sum(Order.small_bags), 0),
            func.coalesce(func.sum(Order.large_bags), 0),
            func.count(Order.id),
        )
        .join(GreenCoffee, GreenCoffee.id == Order.green_coffee_id)
        .filter(Order.status == "delivered")
        .group_by(Order.green_coffee_id, GreenCoffee.name)
    )
    consumption_query = _scope(consumption_query, Order.shop_id, actor)

    roasting_rows = (
        db.session.query(
            RoastingBatch.green_coffee_id,
            GreenCoffee.name,
            func.coalesce(func.sum(RoastingBatch.planned_amount), 0),
            func.coalesce(func.sum(RoastingBatch.roasted_amount), 0),
            func.avg(RoastingBatch.roasting_loss),
            func.count(RoastingBatch.id),
        )
        .join(GreenCoffee, GreenCoffee.id == RoastingBatch.green_coffee_id)
        .group_by(RoastingBatch.green_coffee_id, GreenCoffee.name)
        .order_by(GreenCoffee.name.asc())
        .all()
    )

    return {
        "coffeeConsumption": [
            {
                "greenCoffeeId": coffee_id,
                "coffeeName": name,
                "totalSmallBags": int(small),
                "totalLargeBags": int(large),
                "ordersCount": int(count),
            }
            for coffee_id, name, small, large, count in consumption_query.order_by(GreenCoffee.name.asc()).all()
        ],
        "roastingStats": [
            {
                "greenCoffeeId": coffee_id,
                "coffeeName": name,
                "totalGreenUsed": float(planned),
                "totalRoasted": float(roasted),
                "avgRoastingLoss": float(avg_loss) if avg_loss is not None else None,
                "batchesCount": int(count),
            }
            for coffee_id, name, planned, roasted, avg_loss, count in roasting_rows
        ],
        "generatedAt": to_utc_z(utcnow()),
    }
