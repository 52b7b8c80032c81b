def timeslot_json(s):
    return {
        "id": s.id,
        "staff_id": s.staff_id,
        "start_time": s.start_time.isoformat(),
        "end_time": s.end_time.isoformat(),
        "is_blocked": s.is_blocked,
    }


def public_booking_json(b):
    """What a customer holding the cancel token may see. Never includes the token."""
    slot = b.timeslot
    return {
        "bookingId": b.id,
        "status": b.status,
        "paymentStatus": b.payment_status,
        "customerName": b.customer_name,
        "customerEmail": b.customer_email,
        "customerPhone": b.customer_phone,
        "notes": b.notes,
        "totalCents": b.total_cents,
        "service": {
            "id": b.service_id,
            "name": b.service.name if b.service else None,
            "durationMin": b.service.duration_min if b.service else None,
        },
        "staff": {"id": b.staff_id, "name": b.staff.name if b.staff else None},
        "timeslot": {
            "id": b.timeslot_id,
            "start": slot.start_time.isoformat() if slot else None,
            "end": slot.end_time.isoformat() if slot else None,
        },
        "createdAt": b.created_at.isoformat(),
        "cancelledAt": b.cancelled_at.isoformat() if b.cancelled_at else None,
    }


def admin_booking_json(b):
    slot = b.timeslot
    return {
        "id": b.id,
        "service_id": b.service_id,
        "staff_id": b.staff_id,
        "timeslot_id": b.timeslot_id,
        "start_time": slot.start_time.isoformat() if slot else None,
        "customer_name": b.customer_name,
        "customer_email": b.customer_email,
        "customer_phone": b.customer_phone,
        "notes": b.notes,
        "status": b.status,
        "payment_status": b.payment_status,
        "total_cents": b.total_cents,
        "created_at": b.created_at.isoformat(),
        "cancelled_at": b.cancelled_at.isoformat() if b.cancelled_at else None,
        "cancel_reason": b.cancel_reason,
        "completed_at": b.completed_at.isoformat() if b.completed_at else None,
    }
