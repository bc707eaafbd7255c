"""Warehouse receipts: issue, import, verify, transfer and withdraw"""

import logging
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tradewiser.core.deps import (
    get_db, get_current_user, get_broadcast_service,
    get_file_upload_service, get_external_warehouse_service
)
from tradewiser.models.commodity import Commodity
from tradewiser.models.process import Process
from tradewiser.models.user import User
from tradewiser.models.warehouse import Warehouse
from tradewiser.models.warehouse_receipt import WarehouseReceipt, ReceiptTransfer
from tradewiser.schemas.process import ProcessResponse
from tradewiser.schemas.receipt import (
    ReceiptCreate, ReceiptResponse, ReceiptUploadResponse, ExternalReceiptImport,
    ReceiptTransferCreate, ReceiptTransferResponse, WithdrawalRequest,
    VerifiedReceipt, ReceiptVerification, QRCodeResponse
)
from tradewiser.services import receipts as receipt_ids, stages
from tradewiser.services.broadcast import BroadcastService
from tradewiser.services.external_warehouse import ExternalWarehouseService, ExternalWarehouseError
from tradewiser.services.file_upload import FileUploadService, FileUploadError
from tradewiser.services.lending import get_eligible_receipts

logger = logging.getLogger(__name__)

router = APIRouter()

UPLOAD_INSURANCE_COVERAGE = 60  # % of valuation, imported receipts are not yet verified


async def get_owned_receipt(db: AsyncSession, receipt_id: int, user: User) -> WarehouseReceipt:
    receipt = await db.get(WarehouseReceipt, receipt_id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    if receipt.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to access this receipt")
    return receipt


@router.get("", response_model=List[ReceiptResponse])
async def list_receipts(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    status: Optional[str] = None) -> Any:
    query = select(WarehouseReceipt).where(WarehouseReceipt.owner_id == current_user.id)
    if status:
        query = query.where(WarehouseReceipt.status == status)
    result = await db.execute(query.order_by(WarehouseReceipt.issued_date.desc(), WarehouseReceipt.id.desc()))
    return [ReceiptResponse.model_validate(r) for r in result.scalars().all()]


@router.get("/eligible-for-loans", response_model=List[ReceiptResponse])
async def eligible_for_loans(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)) -> Any:
    """Active, unexpired receipts that can be pledged"""
    receipts = await get_eligible_receipts(db, current_user.id)
    return [ReceiptResponse.model_validate(r) for r in receipts]


@router.get("/verify/{code}", response_model=ReceiptVerification)
async def verify_receipt(
    *,
    db: AsyncSession = Depends(get_db),
    code: str) -> Any:
    """Public lookup behind the receipt QR code, no login required"""
    result = await db.execute(
        select(WarehouseReceipt)
        .options(selectinload(WarehouseReceipt.commodity), selectinload(WarehouseReceipt.warehouse))
        .where(WarehouseReceipt.verification_code == code.upper())
    )
    receipt = result.scalar_one_or_none()
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")

    reason = None
    if receipt.status == "withdrawn":
        reason = "Receipt has been withdrawn"
    elif receipt.is_expired:
        reason = "Receipt has expired"

    return ReceiptVerification(
        valid=reason is None,
        reason=reason,
        receipt=VerifiedReceipt(
            receipt_number=receipt.receipt_number,
            commodity_name=receipt.display_commodity_name,
            quantity=float(receipt.quantity),
            measurement_unit=receipt.measurement_unit,
            warehouse_name=receipt.display_warehouse_name,
            status=receipt.status,
            issued_date=receipt.issued_date,
            expiry_date=receipt.expiry_date,
            blockchain_hash=receipt.blockchain_hash,
            quality_grade=receipt.quality_grade
        )
    )


@router.post("", response_model=ReceiptResponse, status_code=201)
async def create_receipt(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    receipt_in: ReceiptCreate) -> Any:
    """Manual receipt entry"""
    warehouse = await db.get(Warehouse, receipt_in.warehouse_id)
    if not warehouse:
        raise HTTPException(status_code=404, detail="Warehouse not found")

    commodity = None
    if receipt_in.commodity_id is not None:
        commodity = await db.get(Commodity, receipt_in.commodity_id)
        if not commodity:
            raise HTTPException(status_code=404, detail="Commodity not found")
        if commodity.owner_id != current_user.id:
            raise HTTPException(status_code=403, detail="Not authorized to use this commodity")

    issued = datetime.utcnow()
    receipt_number = receipt_ids.generate_receipt_number()
    valuation = receipt_in.valuation
    if valuation is None:
        valuation = receipt_ids.default_valuation(receipt_in.quantity)

    receipt = WarehouseReceipt(
        receipt_number=receipt_number,
        commodity_id=commodity.id if commodity else None,
        owner_id=current_user.id,
        warehouse_id=warehouse.id,
        quantity=Decimal(str(receipt_in.quantity)),
        measurement_unit=receipt_in.measurement_unit,
        status="active",
        blockchain_hash=receipt_ids.generate_blockchain_hash(receipt_number, current_user.id, receipt_in.quantity, issued),
        verification_code=receipt_ids.generate_verification_code(),
        issued_date=issued,
        expiry_date=receipt_ids.default_expiry(issued),
        valuation=Decimal(str(valuation)),
        liens={},
        commodity_name=receipt_in.commodity_name or (commodity.name if commodity else None),
        quality_grade=receipt_in.quality_grade or (commodity.grade_assigned if commodity else None),
        warehouse_name=warehouse.name,
        warehouse_address=warehouse.address,
        receipt_metadata={"process_id": receipt_in.process_id} if receipt_in.process_id else {}
    )
    db.add(receipt)
    await db.commit()
    await db.refresh(receipt)

    logger.info(f"📜 Receipt {receipt.receipt_number} created for user {current_user.id}")
    response = ReceiptResponse.model_validate(receipt)
    await broadcast.broadcast_receipt_update(current_user.id, receipt.id, response.model_dump())
    return response


@router.post("/upload", response_model=ReceiptUploadResponse, status_code=201)
async def upload_receipt(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    uploads: FileUploadService = Depends(get_file_upload_service),
    file: UploadFile = File(...),
    commodity_name: Optional[str] = Form(None),
    quantity: float = Form(0, ge=0),
    warehouse_name: Optional[str] = Form(None)) -> Any:
    """Import a receipt issued by another warehouse from an uploaded document (orange channel)"""
    # one byte past the limit is enough to reject an oversized file
    content = await file.read(uploads.max_size + 1)
    try:
        stored = await uploads.handle_receipt_upload(file.filename or "receipt", content, file.content_type or "")
    except FileUploadError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    source = Path(file.filename or "upload").stem or "upload"
    issued = datetime.utcnow()
    receipt_number = receipt_ids.generate_receipt_number()
    valuation = receipt_ids.default_valuation(quantity)

    receipt = WarehouseReceipt(
        receipt_number=receipt_number,
        owner_id=current_user.id,
        quantity=Decimal(str(quantity)),
        measurement_unit="MT",
        status="active",
        blockchain_hash=receipt_ids.generate_blockchain_hash(receipt_number, current_user.id, quantity, issued),
        verification_code=receipt_ids.generate_verification_code(),
        issued_date=issued,
        expiry_date=receipt_ids.default_expiry(issued),
        valuation=valuation,
        liens={"verification_status": "pending_verification"},
        external_source=source,
        commodity_name=commodity_name,
        warehouse_name=warehouse_name,
        attachment_path=stored.file_path,
        receipt_metadata={
            "channel": "orange",
            "original_filename": file.filename,
            "file_type": stored.file_type,
            "file_size": stored.size,
            "insurance": {
                "coverage_percentage": UPLOAD_INSURANCE_COVERAGE,
                "insured_value": float(valuation * UPLOAD_INSURANCE_COVERAGE / 100),
            }
        }
    )
    db.add(receipt)
    await db.commit()
    await db.refresh(receipt)

    logger.info(f"📎 Receipt {receipt.receipt_number} imported from upload {file.filename}")
    response = ReceiptResponse.model_validate(receipt)
    await broadcast.broadcast_receipt_update(current_user.id, receipt.id, response.model_dump())
    return ReceiptUploadResponse(
        success=True,
        receipt=response,
        message="Receipt uploaded and pending verification",
        verification_status="pending_verification"
    )


@router.post("/import-external", response_model=ReceiptResponse, status_code=201)
async def import_external_receipt(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    external: ExternalWarehouseService = Depends(get_external_warehouse_service),
    import_in: ExternalReceiptImport) -> Any:
    """Fetch a receipt from a partner warehouse system"""
    try:
        data = await external.fetch_receipt(import_in.provider, import_in.external_id)
    except ExternalWarehouseError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    # match on the ids the provider returned
    duplicate = await db.execute(
        select(WarehouseReceipt.id).where(
            WarehouseReceipt.external_source == data["external_source"],
            WarehouseReceipt.external_id == data["external_id"]
        )
    )
    if duplicate.first():
        raise HTTPException(status_code=400, detail="This external receipt has already been imported")

    number_taken = await db.execute(
        select(WarehouseReceipt.id).where(WarehouseReceipt.receipt_number == data["receipt_number"])
    )
    if number_taken.first():
        raise HTTPException(status_code=400, detail="A receipt with this number already exists")

    issued = data.get("issued_date") or datetime.utcnow()
    receipt = WarehouseReceipt(
        receipt_number=data["receipt_number"],
        owner_id=current_user.id,
        quantity=Decimal(str(data["quantity"])),
        measurement_unit=data["measurement_unit"],
        status="active",
        blockchain_hash=receipt_ids.generate_blockchain_hash(data["receipt_number"], current_user.id, data["quantity"], issued),
        verification_code=receipt_ids.generate_verification_code(),
        issued_date=issued,
        expiry_date=receipt_ids.default_expiry(issued),
        valuation=receipt_ids.default_valuation(data["quantity"]),
        liens={"verification_status": "pending_verification"},
        external_id=data["external_id"],
        external_source=data["external_source"],
        commodity_name=data.get("commodity_name"),
        quality_grade=data.get("quality_grade"),
        warehouse_name=data.get("warehouse_name"),
        warehouse_address=data.get("warehouse_address"),
        receipt_metadata={**data["metadata"], "channel": "orange"}
    )
    db.add(receipt)
    await db.commit()
    await db.refresh(receipt)

    logger.info(f"📥 Imported {import_in.provider} receipt {receipt.receipt_number}")
    response = ReceiptResponse.model_validate(receipt)
    await broadcast.broadcast_receipt_update(current_user.id, receipt.id, response.model_dump())
    return response


@router.get("/{receipt_id}", response_model=ReceiptResponse)
async def get_receipt(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    receipt_id: int) -> Any:
    receipt = await get_owned_receipt(db, receipt_id, current_user)
    return ReceiptResponse.model_validate(receipt)


@router.get("/{receipt_id}/qr-code", response_model=QRCodeResponse)
async def get_receipt_qr_code(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    receipt_id: int) -> Any:
    receipt = await get_owned_receipt(db, receipt_id, current_user)
    if not receipt.verification_code:
        receipt.verification_code = receipt_ids.generate_verification_code()
        await db.commit()

    return QRCodeResponse(
        receipt_id=receipt.id,
        verification_code=receipt.verification_code,
        verification_url=receipt_ids.verification_url(receipt.verification_code)
    )


@router.post("/{receipt_id}/transfer")
async def transfer_receipt(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    receipt_id: int,
    transfer_in: ReceiptTransferCreate) -> Any:
    """
    Endorse a receipt to another user

    ownership: the receipt changes hands and stays active
    pledge: the receipt stays with its owner, the pledge is recorded in liens
    """
    receipt = await get_owned_receipt(db, receipt_id, current_user)
    if receipt.status != "active":
        raise HTTPException(status_code=400, detail=f"Only active receipts can be transferred (status: {receipt.status})")
    if transfer_in.to_user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot transfer a receipt to yourself")

    recipient = await db.get(User, transfer_in.to_user_id)
    if not recipient:
        raise HTTPException(status_code=404, detail="Recipient not found")

    transaction_hash = receipt_ids.generate_transaction_hash(receipt.receipt_number, current_user.id, recipient.id)
    now = datetime.utcnow()

    if transfer_in.transfer_type == "ownership":
        receipt.owner_id = recipient.id
        if receipt.commodity_id:
            commodity = await db.get(Commodity, receipt.commodity_id)
            if commodity:
                commodity.owner_id = recipient.id
    else:
        liens = dict(receipt.liens or {})
        pledges = list(liens.get("pledges", []))
        pledges.append({
            "pledged_to": recipient.id,
            "transaction_hash": transaction_hash,
            "date": now.isoformat()
        })
        liens["pledges"] = pledges
        receipt.liens = liens

    transfer = ReceiptTransfer(
        receipt_id=receipt.id,
        from_user_id=current_user.id,
        to_user_id=recipient.id,
        transfer_type=transfer_in.transfer_type,
        transfer_date=now,
        transaction_hash=transaction_hash,
        notes=transfer_in.notes,
        transfer_metadata={"receipt_number": receipt.receipt_number}
    )
    db.add(transfer)
    await db.commit()
    await db.refresh(receipt)
    await db.refresh(transfer)

    logger.info(f"🔁 Receipt {receipt.receipt_number} {transfer.transfer_type} transfer {current_user.id} -> {recipient.id}")
    receipt_response = ReceiptResponse.model_validate(receipt)
    payload = receipt_response.model_dump()
    await broadcast.broadcast_receipt_update(current_user.id, receipt.id, payload)
    await broadcast.broadcast_receipt_update(recipient.id, receipt.id, payload)
    return {
        "receipt": receipt_response,
        "transfer": ReceiptTransferResponse.model_validate(transfer)
    }


@router.get("/{receipt_id}/transfers", response_model=List[ReceiptTransferResponse])
async def list_receipt_transfers(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    receipt_id: int) -> Any:
    """Transfer history, visible to the current owner and to anyone party to a transfer"""
    receipt = await db.get(WarehouseReceipt, receipt_id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")

    result = await db.execute(
        select(ReceiptTransfer)
        .where(ReceiptTransfer.receipt_id == receipt.id)
        .order_by(ReceiptTransfer.transfer_date, ReceiptTransfer.id)
    )
    transfers = result.scalars().all()

    involved = receipt.owner_id == current_user.id or any(
        current_user.id in (t.from_user_id, t.to_user_id) for t in transfers
    )
    if not involved:
        raise HTTPException(status_code=403, detail="Not authorized to access this receipt")
    return transfers


@router.post("/{receipt_id}/withdraw", status_code=201)
async def withdraw_receipt(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    receipt_id: int,
    withdrawal_in: Optional[WithdrawalRequest] = None) -> Any:
    """Start a full or partial withdrawal process"""
    receipt = await get_owned_receipt(db, receipt_id, current_user)
    if receipt.status != "active":
        raise HTTPException(status_code=400, detail=f"Only active receipts can be withdrawn (status: {receipt.status})")

    total = Decimal(str(receipt.quantity))
    requested = withdrawal_in.quantity if withdrawal_in and withdrawal_in.quantity else None
    quantity = Decimal(str(requested)) if requested is not None else total
    if quantity > total:
        raise HTTPException(status_code=400, detail=f"Withdrawal quantity exceeds receipt quantity ({total})")
    partial = quantity < total

    now = datetime.utcnow()
    process = Process(
        commodity_id=receipt.commodity_id,
        warehouse_id=receipt.warehouse_id,
        user_id=current_user.id,
        process_type="withdrawal",
        status="in_progress",
        current_stage=stages.WITHDRAWAL_STAGES[0],
        stage_progress=stages.initial_progress("withdrawal"),
        process_metadata={
            "receipt_id": receipt.id,
            "receipt_number": receipt.receipt_number,
            "quantity": float(quantity),
            "partial": partial
        },
        start_time=now
    )
    db.add(process)
    await db.flush()

    receipt.status = "processing"
    receipt.liens = {
        **(receipt.liens or {}),
        "withdrawal": {
            "process_id": process.id,
            "quantity": float(quantity),
            "partial": partial,
            "requested_at": now.isoformat()
        }
    }

    await db.commit()
    await db.refresh(receipt)
    await db.refresh(process)

    logger.info(f"🚚 Withdrawal {process.id} started for {receipt.receipt_number}: {quantity} ({'partial' if partial else 'full'})")
    receipt_response = ReceiptResponse.model_validate(receipt)
    process_response = ProcessResponse.model_validate(process)
    await broadcast.broadcast_receipt_update(current_user.id, receipt.id, receipt_response.model_dump())
    await broadcast.broadcast_process_update(current_user.id, process.id, process_response.model_dump())
    return {"process": process_response, "receipt": receipt_response}
